# turnkeeper/harness_version.py
# Version constants. Single authoritative definition.
# Referenced by record_serializer.py and failure_handler.py for version
# stamping of turn and failure records.

HARNESS_VERSION: str = "1.0.0"

# Storage format version for turn record serialization.
# The state file itself carries no version tag; this applies to runs_dir
# records only.
RECORD_FORMAT_VERSION: str = "1.0.0"
