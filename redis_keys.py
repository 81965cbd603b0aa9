REDIS_PRESENCE_KEY = "account:presence:{account_id}" # account id - live flag hash

# **Example `account:presence:{account_id}` hash fields**
# - `is_live` = "1" or "0"
# - `last_active` = ISO timestamp of the last live-flag write
