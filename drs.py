from construct import *
import os
import io
import typing

CODING = "latin-1"
DRS_VERSION = 26
MAX_ENTRIES = 1 << 20

drs_header = Struct(
    "notice" / Bytes(36),
    "version" / Int32ul,
    "tribe" / Bytes(16),
    "directory_count" / Int32ul,
    "data_offset" / Hex(Int32ul),
)

# ext is stored back to front, "nib" on disk is the "bin" folder
drs_dinfo = Struct(
    "flag" / Hex(Int8ul),
    "ext" / Bytes(3),
    "offset" / Hex(Int32ul),
    "file_count" / Int32ul,
    "tag" / Computed(lambda ctx: ctx.ext[::-1].decode(CODING)),
)

drs_dentry = Struct(
    "id" / Int32ul,
    "offset" / Hex(Int32ul),
    "size" / Hex(Int32ul),
)

class DRSError(Exception):
    def __init__(self, message: str, id: int=None):
        super().__init__(message)
        self.id = id

class UsageError(DRSError):
    pass

class OpenError(DRSError):
    pass

class FormatError(DRSError):
    pass

class ReadError(DRSError):
    pass

class ResourceError(DRSError):
    pass

class WriteError(DRSError):
    pass

class AllocationError(DRSError):
    pass

def output_name(dinfo, entry):
    return f"{int(entry.id)}.{dinfo.tag}"

def stream_error(e: StreamError, what: str):
    # construct reports a failing read() as a StreamError too
    cause = e.__context__
    if isinstance(cause, OSError):
        return ReadError(f"cannot read {what}: {cause.strerror or cause}")

    return ReadError(f"Hit premature EOF reading {what}")

class DRS():
    """Reader for a DRS resource set opened in binary mode.

    The header and directory table are parsed on construction, entry tables
    are read on demand. The file object is shared by every read and is never
    closed here."""

    def __init__(self, file, max_entries: int=MAX_ENTRIES):
        self.file = file
        self.max_entries = max_entries

        self.reload()

    def reload(self):
        self.file.seek(0)
        self.header = self.read_header()
        self.directories = self.read_directories()

        self._index = None
        self.pwd = "/"

    def read_header(self):
        try:
            header = drs_header.parse_stream(self.file)

        except StreamError as e:
            raise stream_error(e, "header") from e

        except OSError as e:
            raise ReadError(f"cannot read header: {e.strerror or e}") from e

        if header.version != DRS_VERSION:
            raise FormatError(f"Unknown file version, got {header.version}, expected {DRS_VERSION}")

        return header

    def read_directories(self):
        try:
            return Array(self.header.directory_count, drs_dinfo).parse_stream(self.file)

        except StreamError as e:
            raise stream_error(e, "directory table") from e

        except OSError as e:
            raise ReadError(f"cannot read directory table: {e.strerror or e}") from e

    def max_file_count(self):
        return max((d.file_count for d in self.directories), default=0)

    def table_size(self, count: int):
        if count > self.max_entries:
            raise AllocationError(f"entry table of {count} entries exceeds limit of {self.max_entries}")

        return count * drs_dentry.sizeof()

    def entry_table_size(self):
        return self.table_size(self.max_file_count())

    def alloc_entry_table(self, size: int=None):
        if size is None:
            size = self.entry_table_size()

        try:
            return bytearray(size)

        except MemoryError as e:
            raise AllocationError(f"cannot allocate {size} bytes for entry table") from e

    def read_entries(self, dinfo, buf: bytearray=None):
        size = self.table_size(dinfo.file_count)
        if size == 0:
            return []

        if buf is None or len(buf) < size:
            buf = self.alloc_entry_table(size)

        view = memoryview(buf)[:size]
        try:
            self.file.seek(dinfo.offset)
            got = self.file.readinto(view)

        except (OSError, ValueError) as e:
            raise ReadError(f"cannot read entry table at 0x{dinfo.offset:x}: {e}") from e

        if got != size:
            raise ReadError(f"Hit premature EOF reading entry table at 0x{dinfo.offset:x}")

        return Array(dinfo.file_count, drs_dentry).parse(bytes(view))

    def iter_entries(self):
        """Yield (dinfo, entry) in on-disk order, one entry table at a time."""
        buf = self.alloc_entry_table()

        for dinfo in self.directories:
            for entry in self.read_entries(dinfo, buf):
                yield dinfo, entry

    def read_data(self, entry):
        try:
            self.file.seek(entry.offset)
            data = self.file.read(entry.size)

        except (OSError, ValueError) as e:
            raise ReadError(str(e), entry.id) from e

        if len(data) != entry.size:
            raise ReadError(f"Hit premature EOF, got {len(data)} of {int(entry.size)} bytes", entry.id)

        return data

    def extract(self, dinfo, entry, dest: str="."):
        data = self.read_data(entry)
        path = os.path.join(dest, output_name(dinfo, entry))

        try:
            out = open(path, "wb")

        except (OSError, ValueError) as e:
            raise ResourceError(f"{path}: {getattr(e, 'strerror', None) or e}", entry.id) from e

        try:
            with out:
                written = out.write(data)

        except OSError as e:
            raise WriteError(f"{path}: {e.strerror or e}", entry.id) from e

        if written != len(data):
            raise WriteError(f"{path}: short write, {written} of {len(data)} bytes", entry.id)

        return path

    def extract_all(self, dest: str="."):
        # stops at the first failure, files already written are left alone
        return [self.extract(dinfo, entry, dest) for dinfo, entry in self.iter_entries()]

    def index(self):
        if self._index is None:
            index = {}
            for dinfo in self.directories:
                index.setdefault(dinfo.tag, ([], {}))[0].append(dinfo)

            for dinfo, entry in self.iter_entries():
                index[dinfo.tag][1][output_name(dinfo, entry)] = (dinfo, entry)

            self._index = index

        return self._index

    def resolve(self, pathname_actual: str):
        parts = [p for p in pathname_actual.split("/") if p not in ["", "."]]
        tag = None if pathname_actual.startswith("/") else self.pwd.strip("/") or None

        for e, p in enumerate(parts):
            if p == "..":
                tag = None

            elif tag is None:
                if p not in self.index(): raise FileNotFoundError(pathname_actual)
                tag = p

            else:
                files = self.index()[tag][1]
                if p not in files: raise FileNotFoundError(pathname_actual)
                if e != len(parts) - 1 or pathname_actual.endswith("/"): raise NotADirectoryError(pathname_actual)
                return files[p]

        if tag is None:
            return self.directories, None

        return self.index()[tag][0], None

    def ls(self, pathname=""):
        target, entry = self.resolve(pathname)
        if entry is not None:
            return [output_name(target, entry)]

        if target is self.directories:
            return [tag + "/" for tag in self.index()]

        return list(self.index()[target[0].tag][1])

    def ls_recursive(self, pathname=""):
        if pathname and not pathname.endswith("/"):
            pathname += "/"

        temp = []
        for f in self.ls(pathname):
            temp.append(pathname + f)
            if f.endswith("/"):
                temp.extend(self.ls_recursive(pathname + f))

        return temp

    def cd(self, pathname):
        target, entry = self.resolve(pathname)
        if entry is not None:
            raise NotADirectoryError(pathname)

        self.pwd = "/" if target is self.directories else f"/{target[0].tag}/"

    def open(self, pathname) -> typing.BinaryIO:
        dinfo, entry = self.resolve(pathname)
        if entry is None:
            raise IsADirectoryError(pathname)

        return io.BytesIO(self.read_data(entry))
