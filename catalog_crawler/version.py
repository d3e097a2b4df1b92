"""Central versioning and schema constants for the catalog crawler."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

#: Semantic version of this codebase (bump using SemVer).
__version__ = "0.3.0"

#: Configuration schema version (increment if breaking changes to config format).
#: v2 renamed the legacy script arguments (url, b_email, b_pass, db_table).
CONFIG_SCHEMA_VERSION = 2
