from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str

class PresenceResponse(BaseModel):
    account_id: str
    is_live: bool

class MatchStatusResponse(BaseModel):
    waiting: bool
    local_connections: int
