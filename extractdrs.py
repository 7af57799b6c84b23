import os
import sys
import traceback
import drs

def parse_args(argv):
    if len(argv) != 2:
        prog = os.path.basename(argv[0]) if argv else "extractdrs"
        raise drs.UsageError(f"Usage: {prog} <infile.drs>")

    return argv[1]

def open_archive(path: str):
    try:
        return open(path, "rb")

    except OSError as e:
        raise drs.OpenError(f"Unable to open \"{path}\": {e.strerror or e}") from e

def main(argv=None):
    if argv is None:
        argv = sys.argv

    try:
        path = parse_args(argv)

    except drs.UsageError as e:
        print(e)
        return 2

    try:
        with open_archive(path) as f:
            drs.DRS(f).extract_all(".")

    except drs.DRSError as e:
        if e.id is None:
            print(e, file=sys.stderr)

        else:
            print(f"Error extracting file {e.id}: {e}", file=sys.stderr)

        return 1

    except Exception:
        traceback.print_exc()
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
