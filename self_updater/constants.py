"""Constants shared across the self-updater modules."""

from __future__ import annotations

SUCCESS_STATUS_RANGE = range(200, 300)

DOWNLOAD_CHUNK_SIZE = 64 * 1024

INSTALL_RETRY_BUDGET = 50
INSTALL_RETRY_DELAY_SECONDS = 0.1
INSTALL_MAX_COPY_CYCLES = 10

MAC_BUNDLE_SUFFIX = ".app"
WINDOWS_EXECUTABLE_SUFFIX = ".exe"
MAC_APP_ROOT_DEPTH = 3
LINUX_EXECUTABLE_MODE = 0o755

UNZIP_COMMAND = "unzip"
BUNDLED_UNZIP_RELATIVE_PATH = "tools/unzip.exe"
RELAUNCH_SCRIPT_NAME = "update.sh"

EXTRACTOR_COMMAND = "command"
EXTRACTOR_ZIPFILE = "zipfile"
EXTRACTOR_KINDS = (EXTRACTOR_COMMAND, EXTRACTOR_ZIPFILE)

MAX_ARCHIVE_TOTAL_BYTES = 2 * 1024 * 1024 * 1024  # 2 GiB
MAX_ARCHIVE_FILE_SIZE = 1024 * 1024 * 1024  # 1 GiB per file
MAX_ARCHIVE_ENTRIES = 50000
MAX_COMPRESSION_RATIO = 100  # Uncompressed vs compressed bytes

TEMP_DIR_ENV = "SELF_UPDATER_TEMP_DIR"
UNZIP_TOOL_ENV = "SELF_UPDATER_UNZIP_TOOL"
EXTRACTOR_ENV = "SELF_UPDATER_EXTRACTOR"
