import os

class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret")

    # LOCAL mode talks to a backend on this machine
    LOCAL_API = os.getenv("LOCAL_API", "1") == "1"

    if LOCAL_API:
        JAVABITE_API_URL = os.getenv("JAVABITE_API_URL", "http://localhost:8080/api")
    else:
        # resolved through Secret Manager at first use (see api_client.get_secret)
        JAVABITE_API_URL = os.getenv("JAVABITE_API_URL")

    API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
    API_MAX_RETRIES = int(os.getenv("API_MAX_RETRIES", "3"))
    API_RETRY_SLEEP_SECONDS = float(os.getenv("API_RETRY_SLEEP_SECONDS", "1.0"))

    # dashboard refresh, seconds
    WAITER_POLL_SECONDS = int(os.getenv("WAITER_POLL_SECONDS", "5"))
    CHEF_POLL_SECONDS = int(os.getenv("CHEF_POLL_SECONDS", "30"))
    ADMIN_POLL_SECONDS = int(os.getenv("ADMIN_POLL_SECONDS", "30"))

    ORDER_REDIRECT_SECONDS = 3
    BOOKING_REDIRECT_SECONDS = 2

    # Firestore audit trail of order and booking events
    EVENT_LOG_ENABLED = os.getenv("EVENT_LOG_ENABLED", "0") == "1"
    EVENT_LOG_COLLECTION = os.getenv("EVENT_LOG_COLLECTION", "javabite_events")
    EVENT_LOG_MAX_RETRIES = int(os.getenv("EVENT_LOG_MAX_RETRIES", "3"))
    EVENT_LOG_RETRY_SLEEP_SECONDS = float(os.getenv("EVENT_LOG_RETRY_SLEEP_SECONDS", "1.0"))
    # Firestore Native database id "default", not "(default)" (Datastore mode)
    FIRESTORE_DB_ID = os.getenv("FIRESTORE_DB_ID", "default")
