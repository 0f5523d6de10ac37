from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Server configuration
PORT = config.get("PORT", 3000)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "127.0.0.1")

# Callback handling
# POST callbacks are required by the Implicit Grant (response_mode=form_post)
ALLOW_POST = config.is_flag_enabled("ALLOW_POST")
REDIRECT_ON_SUCCESS = config.get("REDIRECT_ON_SUCCESS", "/")
REDIRECT_ON_ERROR = config.get("REDIRECT_ON_ERROR", "/")
# Where routes guarded by require_user send sessions without a user
REDIRECT_ON_UNAUTHENTICATED = config.get("REDIRECT_ON_UNAUTHENTICATED", "/login")
# Absolute callback URL sent as redirect_uri; derived from the request when empty
CALLBACK_URL = config.get("CALLBACK_URL", "")

# Session configuration
SESSION_COOKIE_NAME = config.get("SESSION_COOKIE_NAME", "redirect_auth_session")
SESSION_MAX_ENTRIES = config.get("SESSION_MAX_ENTRIES", 10000)


# Provider requests (REQUEST_TIMEOUT), provider credentials (AUTH_DOMAIN, AUTH_CLIENT_ID, AUTH_CLIENT_SECRET,
# AUTH_RESPONSE_TYPE, AUTH_PUBLIC_KEY_PATH, AUTH_SCOPE, AUTH_AUDIENCE) and the
# session key names (SESSION_STATE_KEY, SESSION_NONCE_KEY, SESSION_USER_ID_KEY,
# SESSION_TOKENS_KEY) are read and validated by AuthenticationController.from_config.
