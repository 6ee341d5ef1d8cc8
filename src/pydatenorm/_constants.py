"""Context keys and format constants for date-time normalization."""

FORMAT_KEY = "datetime_format"
"""Context key holding the format pattern."""

TIMEZONE_KEY = "datetime_timezone"
"""Context key holding the target time zone (``tzinfo`` or identifier)."""

CAST_KEY = "datetime_cast"
"""Context key selecting the normalized representation."""

DESERIALIZATION_PATH_KEY = "deserialization_path"
"""Context key supplied by the pipeline for diagnostics."""

RFC3339 = "Y-m-d\\TH:i:sP"
RFC3339_EXTENDED = "Y-m-d\\TH:i:s.vP"
RFC3339_MICRO = "Y-m-d\\TH:i:s.uP"
RFC2822 = "D, d M Y H:i:s O"

DEFAULT_FORMAT = RFC3339

DEFAULT_TIMEZONE_NAME = "UTC"
"""Zone applied to values that carry no zone of their own."""

TWO_DIGIT_YEAR_PIVOT = 70
"""Two-digit years below the pivot map to 20xx, others to 19xx."""

IGNORED_ATTRIBUTES_KEY = "ignored_attributes"
"""Context key listing row columns to leave out of normalized output."""
