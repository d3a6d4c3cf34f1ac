import os
from dotenv import load_dotenv
load_dotenv()  # Loads the .env file automatically
# Lambda to get an environment variable or raise an Exception if not found
get_env = lambda key: os.getenv(key) or (_ for _ in ()).throw(Exception(f"{key} not found"))

ENTITY_VERSION = os.getenv("ENTITY_VERSION", "1")
STORE_REPOSITORY = os.getenv("STORE_REPOSITORY", "inmemory")
STORE_HOST = os.getenv("STORE_HOST", "localhost")
STORE_API_URL = os.getenv("STORE_API_URL", f"https://{STORE_HOST}/api")
STORE_TOKEN_URL = os.getenv("STORE_TOKEN_URL", f"https://{STORE_HOST}/api/oauth/token")
STORE_POLL_INTERVAL = float(os.getenv("STORE_POLL_INTERVAL", "2.0"))
STORE_REQUEST_TIMEOUT = float(os.getenv("STORE_REQUEST_TIMEOUT", "10.0"))

BLOB_BACKEND = os.getenv("BLOB_BACKEND", "inmemory")
BLOB_BASE_URL = os.getenv("BLOB_BASE_URL", f"https://{STORE_HOST}/storage")
BLOB_PUBLIC_URL = os.getenv("BLOB_PUBLIC_URL", BLOB_BASE_URL)

ENABLE_AUTH = os.getenv("ENABLE_AUTH", "true").lower() == "true"
# Tokens are only verified when auth is on, and then the signing key must be configured
AUTH_JWT_SECRET = get_env("AUTH_JWT_SECRET") if ENABLE_AUTH else os.getenv("AUTH_JWT_SECRET", "")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_TOKEN_URL = os.getenv("AUTH_TOKEN_URL", f"https://{STORE_HOST}/auth/token")
AUTH_REVOKE_URL = os.getenv("AUTH_REVOKE_URL", f"https://{STORE_HOST}/auth/revoke")
AUTH_CLIENT_ID = os.getenv("AUTH_CLIENT_ID", "rescue-console")
LOCAL_ADMIN_UID = os.getenv("LOCAL_ADMIN_UID", "local-admin")
