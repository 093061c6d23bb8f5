"""Tests for PETableEngine: file input, decode results and text rendering."""

import pytest

from pekit.config import DecoderConfig, PETableConfig
from pekit.errors import InputError, NotPEError
from pekit.logger import PETableLogger
from petable import classify, list_exports, list_imports
from petable.core.engine import NOT_PE_LABEL, PE_LABEL, PETableEngine


@pytest.fixture
def engine():
    return PETableEngine(logger=PETableLogger("test-engine", console_output=False))


class TestClassify:

    def test_pe(self, engine, sample_image):
        assert engine.classify(sample_image) == PE_LABEL == "PE"

    def test_empty_buffer(self, engine):
        assert engine.classify(b"") == NOT_PE_LABEL == "Not PE"

    def test_malformed_image_is_not_pe(self, engine, make_pe):
        assert engine.classify(make_pe(export_directory=(0x9000, 40))) == "Not PE"

    def test_module_level(self, sample_image):
        assert classify(sample_image) == "PE"
        assert classify(b"MZ") == "Not PE"


class TestImportListing:

    def test_kernel32_exit_process(self, engine, kernel32_image):
        assert engine.list_imports(kernel32_image) == "KERNEL32.dll\n    ExitProcess"

    def test_multiple_libraries(self, engine, sample_image):
        assert engine.list_imports(sample_image) == (
            "KERNEL32.dll\n"
            "    GetStdHandle\n"
            "    WriteFile\n"
            "USER32.dll\n"
            "    MessageBoxA"
        )

    def test_ordinal_only_library_prints_name(self, engine, make_pe):
        assert engine.list_imports(make_pe(imports=[("WS2_32.dll", [1])])) == "WS2_32.dll"

    def test_no_imports_marker(self, engine, make_pe):
        assert engine.list_imports(make_pe()) == "No imports"

    def test_not_pe_raises(self, engine):
        with pytest.raises(NotPEError):
            engine.list_imports(b"\x00" * 64)

    def test_module_level(self, kernel32_image):
        assert list_imports(kernel32_image) == "KERNEL32.dll\n    ExitProcess"


class TestExportListing:

    def test_order_preserved(self, engine, sample_image):
        assert engine.list_exports(sample_image) == "Zeta\nAlpha\nMid"

    def test_empty_directory_marker(self, engine, make_pe):
        assert engine.list_exports(make_pe(exports=[])) == "No exports"

    def test_absent_directory_marker(self, engine, kernel32_image):
        assert engine.list_exports(kernel32_image) == "No exports"

    def test_not_pe_raises(self, engine):
        with pytest.raises(NotPEError):
            engine.list_exports(b"")

    def test_module_level(self, sample_image):
        assert list_exports(sample_image) == "Zeta\nAlpha\nMid"


class TestConfiguredRendering:

    def test_custom_markers_and_indent(self, make_pe, kernel32_image):
        config = PETableConfig(decoder=DecoderConfig(
            no_imports_marker="(none)",
            no_exports_marker="(nothing)",
            indent="\t",
        ))
        engine = PETableEngine(config, logger=PETableLogger("test-engine", console_output=False))
        assert engine.list_imports(make_pe()) == "(none)"
        assert engine.list_exports(make_pe()) == "(nothing)"
        assert engine.list_imports(kernel32_image) == "KERNEL32.dll\n\tExitProcess"


class TestAnalyze:

    def test_result_fields(self, engine, sample_image):
        result = engine.analyze(sample_image, path="sample.dll")
        assert result.is_pe
        assert result.path == "sample.dll"
        assert result.size == len(sample_image)
        assert result.error == ""
        assert [s.name for s in result.sections] == [".data"]
        assert result.exports == ["Zeta", "Alpha", "Mid"]
        assert result.import_count == 3

    def test_rejection_carries_reason(self, engine):
        result = engine.analyze(b"\x00" * 0x80)
        assert not result.is_pe
        assert "signature" in result.error
        assert result.exports == []
        assert result.imports == []

    def test_analyze_file(self, engine, pe_file):
        result = engine.analyze_file(pe_file)
        assert result.is_pe
        assert result.path == str(pe_file)


class TestReadFile:

    def test_reads_bytes(self, engine, pe_file, sample_image):
        assert engine.read_file(pe_file) == sample_image

    def test_missing_file(self, engine, tmp_path):
        with pytest.raises(InputError, match="Cannot read"):
            engine.read_file(tmp_path / "missing.exe")

    def test_size_limit(self, pe_file):
        config = PETableConfig(decoder=DecoderConfig(max_file_size=16))
        engine = PETableEngine(config, logger=PETableLogger("test-engine", console_output=False))
        with pytest.raises(InputError, match="too large"):
            engine.read_file(pe_file)
