import subprocess
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pptmaker.errors import ConversionFailure
from pptmaker.tools import marp_converter as mc


def _completed(args, returncode=0, stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout="", stderr=stderr)


def fake_marp(args, **kwargs):
    """Stand-in for subprocess.run that writes the -o target like Marp does."""
    output = Path(args[args.index("-o") + 1])
    output.write_bytes(b"PK\x03\x04fake-pptx")
    return _completed(args)


class TestResolveLaunchers(unittest.TestCase):
    def test_explicit_bin_comes_first(self) -> None:
        with patch.object(mc.shutil, "which", return_value=None), patch.object(
            mc, "_local_marp_bin", return_value=Path("/nonexistent/marp")
        ):
            launchers = mc.resolve_launchers("/opt/marp")

        self.assertEqual(launchers, [["/opt/marp"]])

    def test_path_marp_then_npx(self) -> None:
        which = {"marp": "/usr/bin/marp", "npx": "/usr/bin/npx"}
        with patch.object(mc.shutil, "which", side_effect=which.get), patch.object(
            mc, "_local_marp_bin", return_value=Path("/nonexistent/marp")
        ):
            launchers = mc.resolve_launchers()

        self.assertEqual(
            launchers,
            [["/usr/bin/marp"], ["/usr/bin/npx", "--yes", "@marp-team/marp-cli"]],
        )

    def test_no_launchers(self) -> None:
        with patch.object(mc.shutil, "which", return_value=None), patch.object(
            mc, "_local_marp_bin", return_value=Path("/nonexistent/marp")
        ):
            self.assertEqual(mc.resolve_launchers(), [])


class TestConvertMarkdown(unittest.TestCase):
    def test_yields_output_and_cleans_up(self) -> None:
        with patch.object(mc, "resolve_launchers", return_value=[["marp"]]), patch.object(
            mc.subprocess, "run", side_effect=fake_marp
        ) as run:
            with mc.convert_markdown("# Hello") as output_path:
                self.assertEqual(output_path.name, "presentation.pptx")
                self.assertEqual(output_path.read_bytes(), b"PK\x03\x04fake-pptx")
                input_path = output_path.parent / "deck.md"
                self.assertEqual(input_path.read_text(encoding="utf-8"), "# Hello")
                work_dir = output_path.parent

        self.assertFalse(work_dir.exists())
        args = run.call_args.args[0]
        self.assertEqual(args[0], "marp")
        self.assertEqual(args[1], str(input_path))
        self.assertEqual(args[2:4], ["--pptx", "-o"])
        self.assertEqual(args[-1], "--quiet")
        self.assertEqual(run.call_args.kwargs["cwd"], work_dir)

    def test_non_zero_exit_raises_with_stderr(self) -> None:
        def failing(args, **kwargs):
            return _completed(args, returncode=1, stderr="  Unknown theme  \n")

        with patch.object(mc, "resolve_launchers", return_value=[["marp"], ["npx"]]), patch.object(
            mc.subprocess, "run", side_effect=failing
        ) as run:
            with self.assertRaises(ConversionFailure) as ctx:
                with mc.convert_markdown("# Hello"):
                    self.fail("should not yield")

        self.assertEqual(str(ctx.exception), "Marp CLI failed (exit 1): Unknown theme")
        # a failed run is not retried with the next launcher
        self.assertEqual(run.call_count, 1)

    def test_missing_output_raises(self) -> None:
        with patch.object(mc, "resolve_launchers", return_value=[["marp"]]), patch.object(
            mc.subprocess, "run", side_effect=lambda args, **kw: _completed(args)
        ):
            with self.assertRaises(ConversionFailure) as ctx:
                with mc.convert_markdown("# Hello"):
                    pass

        self.assertIn("did not produce output", str(ctx.exception))

    def test_falls_back_when_executable_is_missing(self) -> None:
        def run(args, **kwargs):
            if args[0] == "/missing/marp":
                raise FileNotFoundError(args[0])
            return fake_marp(args, **kwargs)

        with patch.object(
            mc, "resolve_launchers", return_value=[["/missing/marp"], ["npx", "--yes", mc.NPX_PACKAGE]]
        ), patch.object(mc.subprocess, "run", side_effect=run) as mock_run:
            with mc.convert_markdown("# Hello") as output_path:
                self.assertTrue(output_path.exists())

        self.assertEqual(mock_run.call_count, 2)
        self.assertEqual(mock_run.call_args.args[0][:3], ["npx", "--yes", mc.NPX_PACKAGE])

    def test_all_launchers_missing(self) -> None:
        with patch.object(mc, "resolve_launchers", return_value=[["/missing/marp"]]), patch.object(
            mc.subprocess, "run", side_effect=FileNotFoundError("/missing/marp")
        ):
            with self.assertRaises(ConversionFailure) as ctx:
                with mc.convert_markdown("# Hello"):
                    pass

        self.assertIn("Marp CLI not found", str(ctx.exception))

    def test_no_launchers_at_all(self) -> None:
        with patch.object(mc, "resolve_launchers", return_value=[]):
            with self.assertRaises(ConversionFailure):
                with mc.convert_markdown("# Hello"):
                    pass

    def test_permission_error_is_conversion_failure(self) -> None:
        with patch.object(mc, "resolve_launchers", return_value=[["marp"]]), patch.object(
            mc.subprocess, "run", side_effect=PermissionError("denied")
        ):
            with self.assertRaises(ConversionFailure) as ctx:
                with mc.convert_markdown("# Hello"):
                    pass

        self.assertIn("Could not start Marp CLI", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
