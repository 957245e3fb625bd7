"""
Constants used throughout the deriva_duplicate package.
"""

# Provider fault code reported when a fetch resolves to no record
RECORD_NOT_FOUND_CODE = -2147220969

# Prefix applied to the display name of a duplicated record
CLONE_PREFIX = "[Cloned] "

# Name of the input parameter carrying the record to duplicate
TARGET_PARAMETER = "Target"

# Name of the output parameter receiving the clone identifier
OUTPUT_PARAMETER = "output"

# System columns in Deriva
DerivaSystemColumns = ["RID", "RCT", "RMT", "RCB", "RMB"]

# Audit metadata prefixes and status bookkeeping fields
AUDIT_PREFIXES = ("created", "modified")
SYSTEM_STATUS_FIELDS = ("statecode", "statuscode", "entitystate")

# Fields holding binary image content
BLOB_FIELDS = ("entityimage", "entityimage_timestamp")
