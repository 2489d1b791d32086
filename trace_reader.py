# trace_reader.py
import collections
import enum
import logging
import re

logger = logging.getLogger(__name__)

# "<kind> <hex-address>,<size>", e.g. " L 7ff000398,8" or "I  0400d7d4,8"
LINE_RE = re.compile(r"^\s*(\S)\s+(?:0[xX])?([0-9a-fA-F]+)\s*,\s*(-?\d+)\s*$")


class RecordParseError(ValueError):
    def __init__(self, message, lineno=None, line=None):
        super().__init__(message)
        self.lineno = lineno
        self.line = line


class SourceUnavailableError(OSError):
    """The trace file could not be opened or read."""


class Operation(enum.Enum):
    LOAD = "L"
    STORE = "S"
    MODIFY = "M"
    OTHER = "?"

    @classmethod
    def from_char(cls, char):
        for op in (cls.LOAD, cls.STORE, cls.MODIFY):
            if op.value == char:
                return op
        return cls.OTHER


TraceRecord = collections.namedtuple("TraceRecord", "kind address size raw_kind", defaults=(None,))


def parse_line(line, lineno=None):
    """
    Parse one trace line into a TraceRecord.
    Any kind character other than L, S or M yields an OTHER record.
    """
    m = LINE_RE.match(line)
    if not m:
        raise RecordParseError(f"malformed trace line: {line.rstrip()!r}", lineno, line)
    char, hex_addr, size = m.groups()
    address = int(hex_addr, 16)
    if address >> 64:
        raise RecordParseError(f"address wider than 64 bits: {hex_addr}", lineno, line)
    return TraceRecord(Operation.from_char(char), address, int(size), char)


def iter_records(lines):
    """
    Lazily yield records from an iterable of lines.
    Blank lines are ignored; malformed lines are logged and skipped.
    """
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            yield parse_line(line, lineno)
        except RecordParseError as e:
            logger.warning("skipping line %d: %s", lineno, e)


def read_trace(path):
    """
    Yield records from a trace file. The file is opened eagerly so a missing
    or unreadable source fails before the first record is requested.
    """
    try:
        # undecodable bytes become U+FFFD so the line fails to parse and is skipped
        f = open(path, "r", encoding="ascii", errors="replace")
    except OSError as e:
        raise SourceUnavailableError(f"cannot open trace file {path}: {e.strerror or e}") from e
    logger.info("reading trace %s", path)
    return _iter_file(f, path)


def _iter_file(f, path):
    with f:
        try:
            yield from iter_records(f)
        except OSError as e:
            raise SourceUnavailableError(f"cannot read trace file {path}: {e}") from e


def format_record(record):
    char = record.raw_kind or record.kind.value
    # valgrind indents data accesses by one space
    prefix = "" if char == "I" else " "
    return f"{prefix}{char} {record.address:x},{record.size}"


def write_trace(records, path):
    count = 0
    with open(path, "w") as f:
        for record in records:
            f.write(format_record(record) + "\n")
            count += 1
    logger.info("wrote %d records to %s", count, path)
    return path
