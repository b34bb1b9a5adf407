"""Footnotes as a mistune plugin.

Footnotes use the common ``[^label]`` syntax::

    A claim.[^src]

    [^src]: Where the claim comes from.
        Indented lines continue the definition.

Definitions are a block rule and references an inline rule, so mistune's
own parser keeps them out of fenced code, indented code and code spans at
any nesting depth. Labels are case-sensitive. References are numbered by
first occurrence (not by definition order), and the footnote section is
appended after the body. A reference inside a definition is resolved like
any other.
"""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mistune import BlockState

from .errors import DuplicateFootnote, UnresolvedFootnote

ENV_KEY = "folio_footnotes"

_LABEL = r"[^\]\s]+"
_DEFINITION_PATTERN = (
    r"^ {0,3}\[\^(?P<fndef_label>" + _LABEL + r")\]:[ \t]*"
    r"(?P<fndef_text>[^\n]*(?:\n|\Z)(?:(?:[ \t]*\n)*(?: {4}|\t)[^\n]*(?:\n|\Z))*)"
)
_REFERENCE_PATTERN = r"\[\^(?P<fnref_label>" + _LABEL + r")\]"


@dataclass
class Footnote:
    """A referenced footnote.

    Attributes:
        label: Label used in the source (``1`` for ``[^1]``).
        index: 1-based display index, by first reference.
        text: Markdown of the definition, continuation lines dedented.
        references: Number of references seen so far.
    """

    label: str
    index: int
    text: str
    references: int = 0


@dataclass
class FootnoteIndex:
    """Definitions and references of one document, kept in the parser env."""

    source: Path | str
    definitions: dict[str, str] = field(default_factory=dict)
    footnotes: list[Footnote] = field(default_factory=list)

    def define(self, label: str, text: str) -> None:
        if label in self.definitions:
            raise DuplicateFootnote(
                self.source, f"footnote [^{label}] is defined more than once", key=label
            )
        self.definitions[label] = text

    def reference(self, label: str) -> Footnote:
        """Count a reference to ``label``, numbering it on first sight."""
        if label not in self.definitions:
            raise UnresolvedFootnote(
                self.source, f"footnote reference [^{label}] has no definition", key=label
            )
        for footnote in self.footnotes:
            if footnote.label == label:
                break
        else:
            footnote = Footnote(label, len(self.footnotes) + 1, self.definitions[label])
            self.footnotes.append(footnote)
        footnote.references += 1
        return footnote

    @property
    def unused(self) -> list[str]:
        """Labels defined but never referenced, in definition order."""
        referenced = {footnote.label for footnote in self.footnotes}
        return [label for label in self.definitions if label not in referenced]


def footnote_index(env: MutableMapping[str, Any]) -> FootnoteIndex:
    if ENV_KEY not in env:
        env[ENV_KEY] = FootnoteIndex("<string>")
    return env[ENV_KEY]


def definition_text(raw: str) -> str:
    """Definition markup with continuation indents and surrounding blanks removed."""
    first, *rest = raw.split("\n")
    lines = [first.strip()]
    for line in rest:
        if line.startswith("    "):
            line = line[4:]
        elif line.startswith("\t"):
            line = line[1:]
        lines.append(line.rstrip() if line.strip() else "")
    return "\n".join(lines).strip("\n")


def reference_markup(index: int, occurrence: int) -> str:
    """HTML for the ``occurrence``-th reference to footnote ``index``."""
    ref_id = f"fnref-{index}" if occurrence == 1 else f"fnref-{index}-{occurrence}"
    return (
        f'<sup class="footnote-ref" id="{ref_id}">'
        f'<a href="#fn-{index}">{index}</a></sup>'
    )


def render_footnote_section(
    footnotes: list[Footnote], render_block: Callable[[str], str]
) -> str:
    """Render the footnote section, ordered by display index.

    ``footnotes`` may grow while it is rendered, when a definition
    references a footnote not seen before.
    """
    if not footnotes:
        return ""
    items: list[str] = []
    for footnote in footnotes:
        html = render_block(footnote.text).strip()
        backref = f'<a href="#fnref-{footnote.index}" class="footnote-backref">&#8617;</a>'
        if html.endswith("</p>"):
            html = f"{html[:-4]} {backref}</p>"
        else:
            html = f"{html}\n{backref}"
        items.append(f'<li id="fn-{footnote.index}">{html}</li>')
    return (
        '<section class="footnotes">\n<ol>\n'
        + "\n".join(items)
        + "\n</ol>\n</section>\n"
    )


def _parse_definition(block, m, state: BlockState) -> int:
    text = definition_text(m.group("fndef_text"))
    footnote_index(state.env).define(m.group("fndef_label"), text)
    return m.end()


def _parse_reference(inline, m, state) -> int:
    footnote = footnote_index(state.env).reference(m.group("fnref_label"))
    state.append_token(
        {
            "type": "footnote_ref",
            "raw": footnote.label,
            "attrs": {"index": footnote.index, "occurrence": footnote.references},
        }
    )
    return m.end()


def _render_reference(renderer, label: str, index: int, occurrence: int) -> str:
    return reference_markup(index, occurrence)


def _append_section(md, result, state: BlockState):
    index = state.env.get(ENV_KEY)
    if index is None or not index.footnotes:
        return result

    def render_block(markup: str) -> str:
        child = BlockState(parent=state)
        child.process(markup + "\n")
        md.block.parse(child)
        return md.render_state(child)

    return result + render_footnote_section(index.footnotes, render_block)


def footnotes_plugin(md) -> None:
    """Register footnote definitions, references and the section on ``md``.

    Definitions are recognised at the top level, in list items and in
    block quotes.
    """
    md.block.register(
        "folio_footnote", _DEFINITION_PATTERN, _parse_definition, before="ref_link"
    )
    for rules in (md.block.list_rules, md.block.block_quote_rules):
        if "folio_footnote" not in rules:
            md.block.insert_rule(rules, "folio_footnote", before="ref_link")
    md.inline.register(
        "folio_footnote_ref", _REFERENCE_PATTERN, _parse_reference, before="link"
    )
    md.after_render_hooks.append(_append_section)
    if md.renderer is not None and md.renderer.NAME == "html":
        md.renderer.register("footnote_ref", _render_reference)
