import io
import json
import os
import tempfile
import unittest
import zlib
from contextlib import redirect_stdout
from pathlib import Path

from unxip.convert.cli import main
from unxip.convert.models import MANIFEST_SUFFIX, TOC_FILENAME, ExtractConfig
from unxip.convert.utils import default_output_dir, manifest_path
from unxip.convert.xip import ProgressPrinter, xip_to_dir
from unxip.errors import DecompressionError, InvalidSignature, InvalidSizes, TocParseError

from .builders import build_xip, file_xml, pack_header, toc_for, toc_xml

TOC = toc_for([("A", 0, 5), ("B", 5, 3)])


class XipToDirTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.input_xip = self.base / "Sample.xip"
        self.output_dir = self.base / "Sample"

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, data: bytes) -> None:
        self.input_xip.write_bytes(data)

    def _manifest_path(self) -> Path:
        return manifest_path(self.output_dir, MANIFEST_SUFFIX)

    def test_round_trip(self):
        self._write(build_xip(TOC, b"HELLOxyz"))
        manifest = xip_to_dir(self.input_xip, self.output_dir)

        self.assertEqual((self.output_dir / "A").read_bytes(), b"HELLO")
        self.assertEqual((self.output_dir / "B").read_bytes(), b"xyz")
        self.assertEqual((self.output_dir / TOC_FILENAME).read_bytes(), TOC)
        self.assertEqual(manifest.failed, [])
        self.assertEqual([info.name for info in manifest.entries], ["A", "B"])

    def test_header_padding(self):
        self._write(build_xip(TOC, b"HELLOxyz", padding=36))
        manifest = xip_to_dir(self.input_xip, self.output_dir)

        self.assertEqual(manifest.header.header_size, 64)
        self.assertEqual((self.output_dir / "A").read_bytes(), b"HELLO")
        self.assertEqual((self.output_dir / "B").read_bytes(), b"xyz")

    def test_manifest(self):
        self._write(build_xip(TOC, b"HELLOxy"))
        xip_to_dir(self.input_xip, self.output_dir)

        manifest = json.loads(self._manifest_path().read_text(encoding="utf-8"))
        heap_start = 28 + len(zlib.compress(TOC))
        self.assertEqual(manifest["header"]["toc_size_uncompressed"], len(TOC))
        self.assertEqual(
            manifest["entries"],
            [
                {
                    "name": "A",
                    "offset": 0,
                    "absolute_offset": heap_start,
                    "size": 5,
                    "written": 5,
                    "extracted": True,
                },
                {
                    "name": "B",
                    "offset": 5,
                    "absolute_offset": heap_start + 5,
                    "size": 3,
                    "written": 2,
                    "extracted": False,
                },
            ],
        )

    def test_manifest_is_not_a_member(self):
        toc = toc_for([("manifest.json", 0, 5), ("Sample.manifest.json", 5, 3)])
        self._write(build_xip(toc, b"HELLOxyz"))
        manifest = xip_to_dir(self.input_xip, self.output_dir)

        self.assertEqual((self.output_dir / "manifest.json").read_bytes(), b"HELLO")
        self.assertEqual(
            (self.output_dir / "Sample.manifest.json").read_bytes(), b"xyz"
        )
        self.assertEqual(manifest.failed, [])
        expected = self.output_dir.resolve().parent / "Sample.manifest.json"
        self.assertEqual(self._manifest_path(), expected)
        self.assertTrue(self._manifest_path().exists())

    def test_no_manifest(self):
        self._write(build_xip(TOC, b"HELLOxyz"))
        xip_to_dir(self.input_xip, self.output_dir, ExtractConfig(manifest=False))
        self.assertFalse(self._manifest_path().exists())
        self.assertEqual(sorted(os.listdir(self.base)), ["Sample", "Sample.xip"])

    def test_invalid_entries_are_skipped(self):
        toc = toc_xml(
            file_xml("A", 0, 5, 1),
            '<file id="2"><name>nodata</name></file>',
            file_xml(None, 5, 3, 3),
            file_xml("B", 5, 3, 4),
        )
        self._write(build_xip(toc, b"HELLOxyz"))
        manifest = xip_to_dir(self.input_xip, self.output_dir)

        self.assertEqual([info.name for info in manifest.entries], ["A", "B"])
        self.assertFalse((self.output_dir / "nodata").exists())
        self.assertEqual((self.output_dir / "B").read_bytes(), b"xyz")

    def test_truncated_entry_does_not_stop_later_entries(self):
        toc = toc_for([("A", 0, 50), ("B", 5, 3)])
        self._write(build_xip(toc, b"HELLOxyz"))
        printed = io.StringIO()
        manifest = xip_to_dir(
            self.input_xip, self.output_dir, progress=ProgressPrinter(printed)
        )

        self.assertEqual([info.extracted for info in manifest.entries], [False, True])
        self.assertEqual((self.output_dir / "A").read_bytes(), b"HELLOxyz")
        self.assertEqual((self.output_dir / "B").read_bytes(), b"xyz")
        lines = printed.getvalue().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].endswith("A\terror"), lines[0])
        self.assertTrue(lines[1].endswith("B\tdone"), lines[1])

    def test_parallel(self):
        entries = [(f"file{i}", i * 10, 10) for i in range(20)]
        heap = b"".join(bytes([i]) * 10 for i in range(20))
        self._write(build_xip(toc_for(entries), heap))
        manifest = xip_to_dir(self.input_xip, self.output_dir, ExtractConfig(jobs=4))

        self.assertEqual(manifest.failed, [])
        for i in range(20):
            self.assertEqual((self.output_dir / f"file{i}").read_bytes(), bytes([i]) * 10)

    def test_bad_signature_writes_nothing(self):
        self._write(b"PK\x03\x04" + build_xip(TOC, b"HELLOxyz")[4:])
        with self.assertRaises(InvalidSignature):
            xip_to_dir(self.input_xip, self.output_dir)
        self.assertFalse(self.output_dir.exists())

    def test_invalid_sizes_write_nothing(self):
        self._write(pack_header(0, len(TOC)) + b"HELLOxyz")
        with self.assertRaises(InvalidSizes):
            xip_to_dir(self.input_xip, self.output_dir)
        self.assertFalse(self.output_dir.exists())

    def test_decompression_error_extracts_nothing(self):
        compressed = zlib.compress(TOC)
        data = pack_header(len(compressed), len(TOC) + 10) + compressed + b"HELLOxyz"
        self._write(data)
        with self.assertRaises(DecompressionError):
            xip_to_dir(self.input_xip, self.output_dir)
        self.assertFalse(self.output_dir.exists())

    def test_broken_toc_extracts_nothing(self):
        toc = b"<xar><toc><file>"
        self._write(build_xip(toc, b"HELLOxyz"))
        with self.assertRaises(TocParseError):
            xip_to_dir(self.input_xip, self.output_dir)
        self.assertEqual(os.listdir(self.output_dir), [TOC_FILENAME])


class DefaultOutputDirTest(unittest.TestCase):
    def test_strips_extension(self):
        self.assertEqual(
            default_output_dir(Path("/data/Xcode_12.xip")), Path.cwd() / "Xcode_12"
        )

    def test_strips_last_extension_only(self):
        self.assertEqual(
            default_output_dir(Path("Xcode_12.2.xip")), Path.cwd() / "Xcode_12.2"
        )

    def test_no_extension(self):
        self.assertEqual(
            default_output_dir(Path("archive")), Path.cwd() / "archive_extracted"
        )


class CliTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.input_xip = self.base / "Sample.xip"
        self.output_dir = self.base / "out"

    def tearDown(self):
        self._tmp.cleanup()

    def _main(self, *args: str) -> int:
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            status = main([str(self.input_xip), "-o", str(self.output_dir), *args])
        self.stdout = stdout.getvalue()
        return status

    def test_success(self):
        self.input_xip.write_bytes(build_xip(TOC, b"HELLOxyz"))
        self.assertEqual(self._main(), 0)
        self.assertEqual((self.output_dir / "A").read_bytes(), b"HELLO")
        self.assertIn("\tdone", self.stdout)
        self.assertNotIn("\terror", self.stdout)

    def test_partial_failure_still_succeeds(self):
        self.input_xip.write_bytes(build_xip(TOC, b"HELLO"))
        self.assertEqual(self._main("--chunk-size", "2", "-j", "2"), 0)
        self.assertIn("\terror", self.stdout)

    def test_missing_file(self):
        self.assertEqual(self._main(), 1)
        self.assertFalse(self.output_dir.exists())

    def test_invalid_file(self):
        self.input_xip.write_bytes(b"not an archive at all, just some text")
        self.assertEqual(self._main(), 1)

    def test_max_toc_size(self):
        self.input_xip.write_bytes(build_xip(TOC, b"HELLOxyz"))
        self.assertEqual(self._main("--max-toc-size", "10"), 1)

    def test_invalid_options(self):
        self.input_xip.write_bytes(build_xip(TOC, b"HELLOxyz"))
        self.assertEqual(self._main("--jobs", "0"), 1)
        self.assertEqual(self._main("--chunk-size", "0"), 1)
