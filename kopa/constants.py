APP_NAME = "Kopa"

SCHEMA_VERSION = "1"

DB_FILENAME = "kopa.db"
SOCKET_FILENAME = "kopa.sock"
