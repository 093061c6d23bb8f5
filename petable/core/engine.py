"""
PETable Decode Engine
======================

Sits between the command-line shell and the PE decoder: reads the input
file under the configured size limit, runs one decode pass, packages the
outcome as a :class:`DecodeResult`, and renders the plain-text listings
printed by the ``is-pe``, ``import-functions`` and ``export-functions``
commands.

Pipeline:
    1. Read file (size-limited) -- :class:`InputError` on failure
    2. Signature check, header parsing, export and import table walks
    3. Build :class:`DecodeResult`
    4. Render the requested listing

The module-level :func:`classify`, :func:`list_imports` and
:func:`list_exports` functions run the same pipeline on an in-memory buffer
with the default configuration.
"""

from __future__ import annotations

from pathlib import Path

from pekit.config import PETableConfig
from pekit.errors import InputError, NotPEError
from pekit.logger import PETableLogger

from petable.core.models import DecodeResult
from petable.parsers.pe_parser import PEParser
from petable.parsers.reader import Buffer

PE_LABEL: str = "PE"
NOT_PE_LABEL: str = "Not PE"


# ---------------------------------------------------------------------------
# PETableEngine
# ---------------------------------------------------------------------------

class PETableEngine:
    """Runs the decode pipeline and renders its results.

    Usage::

        engine = PETableEngine()
        data = engine.read_file("sample.dll")
        print(engine.list_exports(data))
    """

    def __init__(
        self,
        config: PETableConfig | None = None,
        logger: PETableLogger | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config: PETable configuration.  Defaults are used if not provided.
            logger: Logger instance.  A new one is created if not provided.
        """
        self._config: PETableConfig = config or PETableConfig()
        self._logger: PETableLogger = logger or PETableLogger(
            "engine", log_level=self._config.global_settings.log_level,
        )

    @property
    def config(self) -> PETableConfig:
        return self._config

    # ------------------------------------------------------------------ #
    #  Input
    # ------------------------------------------------------------------ #

    def read_file(self, file_path: str | Path) -> bytes:
        """Read *file_path* into memory.

        Raises:
            InputError: If the file cannot be read or is larger than
                ``decoder.max_file_size``.
        """
        path = Path(file_path)
        max_size = self._config.decoder.max_file_size
        try:
            file_size = path.stat().st_size
            if file_size > max_size:
                raise InputError(
                    f"File too large: {file_size:,} bytes (max: {max_size:,} bytes)"
                )
            data = path.read_bytes()
        except OSError as exc:
            raise InputError(f"Cannot read file {file_path}: {exc}") from exc

        self._logger.debug("Read %d bytes from %s", len(data), path)
        return data

    # ------------------------------------------------------------------ #
    #  Decoding
    # ------------------------------------------------------------------ #

    def analyze(self, data: Buffer, path: str = "<bytes>") -> DecodeResult:
        """Decode *data* and package the outcome.

        Rejection is not an exception here: the result carries
        ``is_pe=False`` and the reason in ``error``.
        """
        result = DecodeResult(path=path, size=len(data))
        parser = PEParser(data, logger=self._logger)

        with self._logger.timed(f"decode {path}"):
            ok = parser.parse()

        if not ok:
            result.error = parser.error
            self._logger.info("%s is not a decodable PE image: %s", path, parser.error)
            return result

        result.is_pe = True
        result.sections = parser.get_sections()
        result.exports = parser.get_exports()
        result.imports = parser.get_imports()
        self._logger.info(
            "%s: %d section(s), %d export(s), %d librar(ies), %d import(s)",
            path,
            len(result.sections),
            len(result.exports),
            len(result.imports),
            result.import_count,
        )
        return result

    def analyze_file(self, file_path: str | Path) -> DecodeResult:
        """Read and decode *file_path*.

        Raises:
            InputError: If the file cannot be read.
        """
        return self.analyze(self.read_file(file_path), path=str(file_path))

    # ------------------------------------------------------------------ #
    #  Rendering
    # ------------------------------------------------------------------ #

    def render_classification(self, result: DecodeResult) -> str:
        return PE_LABEL if result.is_pe else NOT_PE_LABEL

    def render_imports(self, result: DecodeResult) -> str:
        """Library names, each followed by its indented function names.

        Raises:
            NotPEError: If *result* is a rejection.
        """
        self._require_pe(result)
        if not result.imports:
            return self._config.decoder.no_imports_marker

        indent = self._config.decoder.indent
        lines: list[str] = []
        for entry in result.imports:
            lines.append(entry.library)
            lines.extend(f"{indent}{name}" for name in entry.functions)
        return "\n".join(lines)

    def render_exports(self, result: DecodeResult) -> str:
        """Export names, one per line.

        Raises:
            NotPEError: If *result* is a rejection.
        """
        self._require_pe(result)
        if not result.exports:
            return self._config.decoder.no_exports_marker
        return "\n".join(result.exports)

    # ------------------------------------------------------------------ #
    #  Buffer-level operations
    # ------------------------------------------------------------------ #

    def classify(self, data: Buffer) -> str:
        """Return ``"PE"`` if *data* decodes as a PE image, else ``"Not PE"``."""
        return self.render_classification(self.analyze(data))

    def list_imports(self, data: Buffer) -> str:
        """Decode *data* and render its import listing.

        Raises:
            NotPEError: If *data* is rejected.
        """
        return self.render_imports(self.analyze(data))

    def list_exports(self, data: Buffer) -> str:
        """Decode *data* and render its export listing.

        Raises:
            NotPEError: If *data* is rejected.
        """
        return self.render_exports(self.analyze(data))

    @staticmethod
    def _require_pe(result: DecodeResult) -> None:
        if not result.is_pe:
            raise NotPEError(result.error or NOT_PE_LABEL)


# ========================= Module-level convenience ========================

def _default_engine() -> PETableEngine:
    if not hasattr(_default_engine, "_cached"):
        _default_engine._cached = PETableEngine()  # type: ignore[attr-defined]
    return _default_engine._cached  # type: ignore[attr-defined]


def classify(data: Buffer) -> str:
    """Return ``"PE"`` or ``"Not PE"`` for *data*; never raises."""
    return _default_engine().classify(data)


def list_imports(data: Buffer) -> str:
    """Render the import listing of *data*; raises :class:`NotPEError` on rejection."""
    return _default_engine().list_imports(data)


def list_exports(data: Buffer) -> str:
    """Render the export listing of *data*; raises :class:`NotPEError` on rejection."""
    return _default_engine().list_exports(data)
