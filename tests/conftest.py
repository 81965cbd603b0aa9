import os

# Must be set before backend/app are imported
os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")
