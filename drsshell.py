import os
import sys
import codecs
import shlex
import hexdump
import drs

HELP = [
    "ls [files...] (list the tag folders, or the files in a folder)",
    "cd [dir] (change the working folder)",
    "pwd (get the current working folder)",
    "dump file destination (read a file and save it)",
    "dump folder/* destination (save every file below a folder)",
    "cat files... (read files and output to console)",
    "hexdump files... (read files and output in hexdump)",
    "hd files... (short for hexdump)",
    "info (show the archive header and directory table)",
    "encoding [encoding] (set the encoding used for tags and header strings)",
    "help (show this help message)",
    "exit",
]

def print_info(s: drs.DRS):
    h = s.header
    notice = h.notice.rstrip(b"\0").decode(drs.CODING)
    tribe = h.tribe.rstrip(b"\0").decode(drs.CODING)

    print(f"notice: {notice}")
    print(f"version: {h.version}")
    print(f"tribe: {tribe}")
    print(f"directories: {h.directory_count}")
    print(f"data offset: 0x{h.data_offset:08x}")

    for d in s.directories:
        print(f"{d.tag}: flag 0x{d.flag:02x}, {d.file_count:5d} files @ 0x{d.offset:08x}")

def dump(s: drs.DRS, pathname: str, destination: str):
    if pathname.endswith("*"):
        folder = pathname.rstrip("*")
        for f in s.ls_recursive(folder):
            if f.endswith("/"): continue

            out = os.path.join(destination, f[len(folder):].lstrip("/"))
            os.makedirs(os.path.split(out)[0] or ".", exist_ok=True)
            with open(out, "wb") as o:
                o.write(s.open(f).read())

    else:
        os.makedirs(os.path.split(destination)[0] or ".", exist_ok=True)
        with open(destination, "wb") as o:
            o.write(s.open(pathname).read())

def run_command(s: drs.DRS, cmd: list):
    """Run one shell command. Returns False once the shell should stop."""
    if cmd[0] == "exit":
        return False

    elif cmd[0] == "ls":
        if len(cmd) <= 2:
            for l in s.ls(cmd[1] if len(cmd) == 2 else ""):
                print(l)

        else:
            for k in cmd[1:]:
                print(f"{k}:")
                for l in s.ls(k):
                    print(l)

    elif cmd[0] == "cd":
        if len(cmd) > 2:
            print(f"{cmd[0]}: too many arguments")

        else:
            s.cd(cmd[1] if len(cmd) == 2 else "/")

    elif cmd[0] == "pwd":
        print(s.pwd)

    elif cmd[0] == "dump":
        if len(cmd) != 3:
            print(f"{cmd[0]}: usage: {cmd[0]} filename destination")

        else:
            dump(s, cmd[1], cmd[2])

    elif cmd[0] == "cat":
        if len(cmd) == 1:
            print(f"{cmd[0]}: usage: {cmd[0]} files...")

        else:
            for f in cmd[1:]:
                data = s.open(f).read()
                sys.stdout.flush()
                sys.stdout.buffer.write(data)
                sys.stdout.buffer.flush()

    elif cmd[0] in ["hd", "hexdump"]:
        if len(cmd) == 1:
            print(f"{cmd[0]}: usage: {cmd[0]} files...")

        else:
            for f in cmd[1:]:
                hexdump.hexdump(s.open(f).read())

    elif cmd[0] == "info":
        print_info(s)

    elif cmd[0] == "encoding":
        if len(cmd) == 1:
            print(drs.CODING)

        elif len(cmd) > 2:
            print(f"{cmd[0]}: too many arguments")

        else:
            codecs.lookup(cmd[1])
            old = drs.CODING
            drs.CODING = cmd[1]

            # tags are decoded at parse time
            try:
                s.reload()

            except Exception:
                drs.CODING = old
                s.reload()
                raise

    elif cmd[0] == "help":
        for l in HELP:
            print(l)

    else:
        print(f"{cmd[0]}: command not found")

    return True

def do_drs_shell(s: drs.DRS, source: str=""):
    print("DRS shell")
    print(f"source file: {source}, {len(s.directories)} directories")

    while True:
        try:
            line = input(f"[{s.pwd}]> ")

        except EOFError:
            break

        try:
            cmd = shlex.split(line)

        except ValueError as e:
            print(f"syntax error: {e}")
            continue

        if len(cmd) <= 0: continue

        try:
            if not run_command(s, cmd):
                break

        except Exception as e:
            print(f"{cmd[0]}: {type(e).__name__}: {e}")

def main(argv=None):
    if argv is None:
        argv = sys.argv

    if len(argv) != 2:
        print(f"Usage: {os.path.basename(argv[0]) if argv else 'drsshell'} <infile.drs>")
        return 2

    try:
        with open(argv[1], "rb") as f:
            do_drs_shell(drs.DRS(f), argv[1])

    except (OSError, drs.DRSError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
