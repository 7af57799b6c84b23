import contextlib
import io
import os
import sys
import tempfile
import unittest
from unittest import mock

# Allow us to run even if not at the repository root.
root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
sys.path.insert(0, root_dir)
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import drs
import drsshell
from drsfile import SAMPLE, build_drs


class TestShell(unittest.TestCase):
    def setUp(self):
        self.s = drs.DRS(io.BytesIO(build_drs(SAMPLE)))

    def run_command(self, *cmd):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            ret = drsshell.run_command(self.s, list(cmd))
        return ret, out.getvalue()

    def run_shell(self, *lines):
        out = io.StringIO()
        with mock.patch("builtins.input", side_effect=list(lines)), contextlib.redirect_stdout(out):
            drsshell.do_drs_shell(self.s, "test.drs")
        return out.getvalue()

    def test_ls(self):
        self.assertEqual(self.run_command("ls"), (True, "bin/\nslp/\nwav/\n"))
        self.assertEqual(self.run_command("ls", "bin")[1], "50500.bin\n50501.bin\n")
        self.assertEqual(self.run_command("ls", "bin", "wav")[1], "bin:\n50500.bin\n50501.bin\nwav:\n")

    def test_cd_pwd(self):
        self.run_command("cd", "slp")
        self.assertEqual(self.run_command("pwd")[1], "/slp/\n")
        self.run_command("cd")
        self.assertEqual(self.run_command("pwd")[1], "/\n")
        self.assertEqual(self.run_command("cd", "a", "b")[1], "cd: too many arguments\n")

    def test_cat(self):
        stdout = io.TextIOWrapper(io.BytesIO())
        with mock.patch("sys.stdout", new=stdout):
            drsshell.run_command(self.s, ["cat", "slp/1.slp", "bin/50500.bin"])
        stdout.flush()
        self.assertEqual(stdout.buffer.getvalue(), b"slp one<bin 50500>")

    def test_cat_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.run_command("cat", "slp/3.slp")

    def test_hexdump(self):
        _, out = self.run_command("hd", "slp/50500.slp")
        self.assertTrue(out.startswith("00000000: 73 6C 70 20 35 30 35 30  30"))
        self.assertIn("slp 50500", out)
        self.assertEqual(self.run_command("hexdump")[1], "hexdump: usage: hexdump files...\n")

    def test_info(self):
        _, out = self.run_command("info")
        self.assertIn("notice: Copyright (c) 1997 Ensemble Studios.\n", out)
        self.assertIn("version: 26\n", out)
        self.assertIn("tribe: 1.00tribe\n", out)
        self.assertIn("slp: flag 0x61,     3 files @ 0x", out)
        self.assertIn("wav: flag 0x00,     0 files @ 0x", out)

    def test_dump_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = os.path.join(tmp, "out", "one.slp")
            self.run_command("dump", "slp/1.slp", dest)
            with open(dest, "rb") as f:
                self.assertEqual(f.read(), b"slp one")

    def test_dump_folder(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.run_command("dump", "slp/*", tmp)
            self.assertEqual(sorted(os.listdir(tmp)), ["1.slp", "2.slp", "50500.slp"])

            self.run_command("dump", "*", os.path.join(tmp, "all"))
            self.assertEqual(sorted(os.listdir(os.path.join(tmp, "all"))), ["bin", "slp"])
            with open(os.path.join(tmp, "all", "bin", "50500.bin"), "rb") as f:
                self.assertEqual(f.read(), b"<bin 50500>")

    def test_encoding(self):
        self.assertEqual(self.run_command("encoding")[1], "latin-1\n")
        try:
            self.run_command("encoding", "ascii")
            self.assertEqual(drs.CODING, "ascii")
            self.assertEqual(self.s.ls(""), ["bin/", "slp/", "wav/"])
        finally:
            drs.CODING = "latin-1"

    def test_exit(self):
        self.assertEqual(self.run_command("exit"), (False, ""))

    def test_shell_loop(self):
        out = self.run_shell("ls", "", "cd slp", "bogus", "cat missing.slp", "exit")
        lines = out.splitlines()
        self.assertEqual(lines[0], "DRS shell")
        self.assertEqual(lines[1], "source file: test.drs, 3 directories")
        self.assertIn("bogus: command not found", lines)
        self.assertIn("cat: FileNotFoundError: missing.slp", lines)
        self.assertEqual(self.s.pwd, "/slp/")

    def test_shell_stops_at_eof(self):
        out = self.run_shell("pwd", 'ls "unterminated', EOFError())
        self.assertIn("/\n", out)
        self.assertIn("syntax error", out)


if __name__ == "__main__":
    unittest.main()
