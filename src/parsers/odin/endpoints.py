BASE_URL = "https://api.odin.fun/v1"

# Token listings (sort is "<field>:desc")
TOKENS = "/tokens"
TOKEN = "/token/{token_id}"
TOKEN_TRADES = "/token/{token_id}/trades"

# Users / creators
USER = "/user/{principal}"
USER_BALANCES = "/user/{principal}/balances"

# Window sizes of the recent-tokens feed
NEWEST_TOKENS_LIMIT = 4
OLDER_TOKENS_LIMIT = 20

# Media
TOKEN_IMAGE_URL = "https://images.odin.fun/token/{token_id}"
USER_IMAGE_URL = "https://images.odin.fun/user/{principal}"
