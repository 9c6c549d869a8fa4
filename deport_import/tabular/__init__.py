from .reader import (
    AmbiguousDelimiterError,
    DecodeError,
    DelimiterDetection,
    MissingHeadersError,
    check_file,
    decode,
    decode_text,
    detect_delimiter,
    detect_delimiter_from_content,
    list_sheet_names,
    split_line,
)

__all__ = [
    "AmbiguousDelimiterError",
    "DecodeError",
    "DelimiterDetection",
    "MissingHeadersError",
    "check_file",
    "decode",
    "decode_text",
    "detect_delimiter",
    "detect_delimiter_from_content",
    "list_sheet_names",
    "split_line",
]
