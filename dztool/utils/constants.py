APP_NAME = "dztool"

# Checksums
# Files at or below this size are compared by size only
SMALL_FILE_THRESHOLD = 1024 * 1024
HASH_CHUNK_SIZE = 1024 * 1024
SMALL_FILE_MARKER = "small_file"
IGNORED_FILE_NAMES = frozenset({"desktop.ini", "thumbs.db"})

# Copying
LARGE_FILE_THRESHOLD = 100 * 1024 * 1024
COPY_CHUNK_SIZE = 8 * 1024 * 1024

# WorkPool.join() poll interval in seconds
JOIN_POLL_INTERVAL = 0.01

# Server layout
SERVER_CONFIG_FILE = "serverDZ.cfg"
MISSIONS_FOLDER = "mpmissions"
KEYS_FOLDER = "keys"
KEY_EXTENSION = ".bikey"
ECONOMY_CORE_FILE = "cfgeconomycore.xml"
ECONOMY_CORE_CLOSING_TAG = "</economycore>"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'

# root tag -> (file name suffix, manifest type attribute)
ECONOMY_FILES = {
    "types": ("types.xml", "types"),
    "spawnabletypes": ("cfgspawnabletypes.xml", "spawnabletypes"),
    "events": ("events.xml", "events"),
}
