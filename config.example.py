# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

Without TASKFLOW_REMOTE_URL the app runs against the local JSON backend.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: INFO); the log file records DEBUG.",
    "TASKFLOW_LOG_LEVELS": "Console level per logger, e.g. taskflow.sync=DEBUG,taskflow.remote=INFO.",
    "TASKFLOW_DATA_DIR": "Local data directory (default: .local/taskflow).",
    # Hosted backend (data store + auth service)
    "TASKFLOW_REMOTE_URL": "Project URL of the hosted backend (fallback: SUPABASE_URL).",
    "TASKFLOW_REMOTE_KEY": "Public (anon) API key of the project (fallback: SUPABASE_ANON_KEY).",
    "TASKFLOW_HTTP_TIMEOUT_SECONDS": "Read timeout for backend requests (default: 15).",
    "TASKFLOW_OAUTH_REDIRECT_URL": "Where the OAuth provider sends the browser back to.",
    # Offline fallback
    "TASKFLOW_OFFLINE_CACHE": "Serve cached GET responses when the network fails (default: true).",
    "TASKFLOW_OFFLINE_BYPASS_HOSTS": "Hosts never cached (default: the remote URL's host).",
    # Local backend
    "TASKFLOW_LOCAL_STORE_PATH": "JSON file of the local backend (default: <data_dir>/local_store.json).",
    # Read windows
    "TASKFLOW_ACTIVITY_LIMIT": "Activity records loaded per group (default: 50).",
    "TASKFLOW_NOTIFICATION_LIMIT": "Notifications loaded per refresh (default: 20).",
    # Optional CLI auto sign-in
    "TASKFLOW_EMAIL": "Email to sign in with on startup.",
    "TASKFLOW_PASSWORD": "Password for TASKFLOW_EMAIL.",
}
