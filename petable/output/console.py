"""
PETable Console Output
=======================

Rich-powered terminal display for decode results: a summary panel, the
section table, and the import / export tables.  Used by the CLI when
``--rich`` is given; the default plain-text output comes from
:class:`~petable.core.engine.PETableEngine`.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel

from pekit.config import DecoderConfig
from pekit.console import PETableConsole

from petable.core.models import DecodeResult, ImportEntry, SectionInfo


class PETableConsoleOutput:
    """Rich terminal display for :class:`DecodeResult` objects.

    Usage::

        output = PETableConsoleOutput()
        output.display_imports(result)
    """

    def __init__(
        self,
        console: PETableConsole | None = None,
        decoder: DecoderConfig | None = None,
    ) -> None:
        """Initialise the output renderer.

        Args:
            console: Optional PETableConsole instance.  A new one is
                     created if not provided.
            decoder: Supplies the empty-table markers.  Defaults are used
                     if not provided.
        """
        self._console: PETableConsole = console or PETableConsole()
        self._decoder: DecoderConfig = decoder or DecoderConfig()

    # ------------------------------------------------------------------ #
    #  Per-command views
    # ------------------------------------------------------------------ #

    def display_classification(self, result: DecodeResult) -> None:
        """Display the summary panel and, for PE images, the section table."""
        self.display_header(result)
        if result.is_pe and result.sections:
            self.display_sections(result.sections)

    def display_imports(self, result: DecodeResult) -> None:
        self.display_header(result)
        self._console.section("Imports")
        if not result.imports:
            self._marker(self._decoder.no_imports_marker)
            return
        self._import_table(result.imports)

    def display_exports(self, result: DecodeResult) -> None:
        self.display_header(result)
        self._console.section("Exports")
        if not result.exports:
            self._marker(self._decoder.no_exports_marker)
            return
        self._console.table(
            ["#", "Name"],
            [(i, name) for i, name in enumerate(result.exports, 1)],
            styles=["dim", "bold"],
        )

    # ------------------------------------------------------------------ #
    #  Building blocks
    # ------------------------------------------------------------------ #

    def display_header(self, result: DecodeResult) -> None:
        """Display the file summary panel."""
        verdict = (
            "[petable.success]PE image[/petable.success]"
            if result.is_pe
            else "[petable.error]Not PE[/petable.error]"
        )
        lines: list[str] = [
            f"[bold]File:[/bold]     {escape(result.path)}",
            f"[bold]Size:[/bold]     {result.size:,} bytes",
            f"[bold]Verdict:[/bold]  {verdict}",
        ]
        if result.is_pe:
            lines.extend([
                f"[bold]Sections:[/bold] {len(result.sections)}",
                f"[bold]Exports:[/bold]  {len(result.exports)}",
                f"[bold]Imports:[/bold]  {result.import_count} from "
                f"{len(result.imports)} librar(ies)",
            ])
        elif result.error:
            lines.append(f"[bold]Reason:[/bold]   {escape(result.error)}")

        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]PE Image[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_sections(self, sections: list[SectionInfo]) -> None:
        self._console.section("Sections")
        self._console.table(
            ["#", "Name", "VAddr", "VSize", "Raw Offset"],
            [
                (
                    i,
                    sec.name or "<unnamed>",
                    f"0x{sec.virtual_address:x}",
                    f"0x{sec.virtual_size:x}",
                    f"0x{sec.raw_offset:x}",
                )
                for i, sec in enumerate(sections, 1)
            ],
            styles=["dim", "bold", "", "", ""],
        )

    def _import_table(self, imports: list[ImportEntry]) -> None:
        rows: list[tuple[str, str]] = []
        for entry in imports:
            if not entry.functions:
                rows.append((entry.library, "[ordinal imports only]"))
                continue
            for idx, name in enumerate(entry.functions):
                rows.append((entry.library if idx == 0 else "", name))
        self._console.table(
            ["Library", "Function"],
            rows,
            styles=["bold bright_cyan", ""],
        )

    def _marker(self, text: str) -> None:
        self._console.print(f"[petable.dim]{escape(text)}[/petable.dim]")
