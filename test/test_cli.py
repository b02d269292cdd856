# -*- coding: utf-8 -*-

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from dylibvendor.__main__ import main

from helper import LIBSYSTEM, FakeLister, RecordingToolchain


class TestMain(unittest.TestCase):
    def setUp(self):
        self._tmp_dir = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp_dir.name)

        self.sysroot = tmp.joinpath("MyApp.app", "Contents")
        self.lib1 = self.sysroot.joinpath("Frameworks", "lib1.dylib")
        self.lib1.parent.mkdir(parents=True)
        self.lib1.write_bytes(b"lib1")

        system_dir = tmp.joinpath("usr_lib")
        system_dir.mkdir()
        cellar = tmp.joinpath("homebrew", "Cellar")
        self.foo = cellar.joinpath("foo", "1.0", "lib", "libfoo.dylib")
        self.foo.parent.mkdir(parents=True)
        self.foo.write_bytes(b"foo")

        self.config = tmp.joinpath("config.json")
        self.config.write_text(
            json.dumps(
                {
                    "system_lib_dir": str(system_dir),
                    "package_cache_dir": str(cellar),
                    "package_prefix": str(cellar.parent),
                }
            )
        )
        self.out = tmp.joinpath("out")
        self.report = tmp.joinpath("report.json")

        self.lister = FakeLister({str(self.lib1): ["@rpath/libfoo.dylib", LIBSYSTEM], str(self.foo): [LIBSYSTEM]})
        self.toolchain = RecordingToolchain()

    def tearDown(self):
        self._tmp_dir.cleanup()

    def run_main(self, *args, env=None):
        argv = ["-o", str(self.out), "-c", str(self.config), *args, str(self.sysroot)]
        with mock.patch.dict("dylibvendor.__main__.LISTERS", {"dyld_info": lambda: self.lister}), mock.patch(
            "dylibvendor.__main__.Toolchain", return_value=self.toolchain
        ), mock.patch.dict(os.environ, env or dict(), clear=True):
            main(argv)

    def test_vendor(self):
        self.run_main("-s", "Developer ID", "-a", "x86_64", "--report", str(self.report))

        self.assertListEqual(sorted(p.name for p in self.out.iterdir()), ["libfoo.dylib"])
        self.assertListEqual(self.lister.calls, [(str(self.lib1), "x86_64"), (str(self.foo), "x86_64")])

        out_foo = str(self.out.joinpath("libfoo.dylib"))
        self.assertListEqual(
            self.toolchain.actions,
            [
                ("id", out_foo, "@rpath/libfoo.dylib"),
                ("sign", out_foo, "Developer ID"),
                ("change", str(self.lib1), "@rpath/libfoo.dylib", "@rpath/libfoo.dylib"),
                ("sign", str(self.lib1), "Developer ID"),
            ],
        )

        with self.report.open() as f:
            report = json.load(f)
        self.assertEqual(
            report[str(self.lib1)]["@rpath/libfoo.dylib"], {"classification": "required", "path": str(self.foo)}
        )
        self.assertEqual(report[str(self.foo)][LIBSYSTEM]["classification"], "system")

    def test_identity_from_environment(self):
        self.run_main(env={"CODESIGN_IDENTITY": "Env ID"})

        self.assertTrue(all(a[2] == "Env ID" for a in self.toolchain.actions if a[0] == "sign"))

    def test_missing_identity(self):
        with self.assertRaises(SystemExit) as exc:
            self.run_main()
        self.assertEqual(exc.exception.code, 2)

    def test_dry_run(self):
        self.run_main("-s", "Developer ID", "--dry-run")

        self.assertFalse(self.out.exists())
        # the real toolchain is swapped for the logging one
        self.assertListEqual(self.toolchain.actions, list())

    def test_fatal_error(self):
        del self.lister.deps[str(self.foo)]

        with self.assertRaises(SystemExit) as exc, self.assertLogs("dylibvendor", level="CRITICAL") as logs:
            self.run_main("-s", "Developer ID", "-q")
        self.assertEqual(exc.exception.code, 1)
        self.assertIn(str(self.foo), logs.output[0])
        self.assertFalse(self.out.exists())

    def test_config_is_a_directory(self):
        self.config.unlink()
        self.config.mkdir()

        with self.assertRaises(SystemExit) as exc, self.assertLogs("dylibvendor", level="CRITICAL") as logs:
            self.run_main("-s", "Developer ID")
        self.assertEqual(exc.exception.code, 1)
        self.assertIn(str(self.config), logs.output[0])

    def test_unwritable_report(self):
        report = self.out.joinpath("missing_dir", "report.json")

        with self.assertRaises(SystemExit) as exc, self.assertLogs("dylibvendor", level="CRITICAL") as logs:
            self.run_main("-s", "Developer ID", "--report", str(report))
        self.assertEqual(exc.exception.code, 1)
        self.assertIn(str(report), logs.output[0])
