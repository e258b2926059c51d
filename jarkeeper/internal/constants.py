APP_NAME = "jarkeeper"

# Environment overrides
HOME_ENV_VAR = "JARKEEPER_HOME"
LOG_LEVEL_ENV_VAR = "JARKEEPER_LOG_LEVEL"
REGISTRY_URL_ENV_VAR = "JARKEEPER_REGISTRY_URL"
JAVA_ENV_VAR = "JARKEEPER_JAVA"
HOST_ENV_VAR = "JARKEEPER_HOST"
PORT_ENV_VAR = "JARKEEPER_PORT"

# Files
CACHE_META_FILE_NAME = "cache.json"
LOG_FILE_NAME = "jarkeeper.log.json"
SERVER_CONFIG_SUFFIX = ".json"

# Remote registry
DEFAULT_REGISTRY_URL = "https://papermc.io/api/v1"
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Launch
DEFAULT_JAVA_EXECUTABLE = "java"
SERVER_SUBDIRS = ("configs", "worlds", "plugins")

# REST facade
API_HOST = "127.0.0.1"
API_PORT = 8080
