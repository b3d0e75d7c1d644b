"""Best-effort recovery of appointment kind and subject name from event titles.

External events are free text. Titles written by the export path look like
``"Retorno - João Silva"``; hand-made ones can be anything. The parser walks
an ordered list of keyword patterns (first match wins), removes the matched
keyword and separator punctuation, and falls back to a generic kind and a
placeholder name instead of failing. Swap the pattern list to support other
naming conventions.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from clinicsync.scheduling.types import AppointmentKind

DEFAULT_KIND = AppointmentKind.CONSULTA.value
PLACEHOLDER_NAME = "Paciente (importado)"

_SEPARATORS = re.compile(r"[-:]")


@dataclass(frozen=True)
class KindPattern:
    pattern: Pattern[str]
    kind: str


@dataclass(frozen=True)
class ParsedTitle:
    kind: str
    subject_name: str
    matched: bool


DEFAULT_PATTERNS: Sequence[KindPattern] = (
    KindPattern(re.compile(r"consulta", re.IGNORECASE), AppointmentKind.CONSULTA.value),
    KindPattern(re.compile(r"retorno", re.IGNORECASE), AppointmentKind.RETORNO.value),
    KindPattern(re.compile(r"procedimento", re.IGNORECASE), AppointmentKind.PROCEDIMENTO.value),
    KindPattern(re.compile(r"avalia[çc][ãa]o", re.IGNORECASE), AppointmentKind.AVALIACAO.value),
    KindPattern(re.compile(r"emerg[êe]ncia", re.IGNORECASE), AppointmentKind.EMERGENCIA.value),
)


class TitleParser:
    def __init__(
        self,
        patterns: Sequence[KindPattern] = DEFAULT_PATTERNS,
        *,
        default_kind: str = DEFAULT_KIND,
        placeholder_name: str = PLACEHOLDER_NAME,
    ) -> None:
        self._patterns = tuple(patterns)
        self._default_kind = default_kind
        self._placeholder_name = placeholder_name

    def parse(self, title: Optional[str]) -> ParsedTitle:
        text = (title or "").strip()
        for entry in self._patterns:
            if entry.pattern.search(text):
                residual = entry.pattern.sub("", text, count=1)
                return ParsedTitle(entry.kind, self._clean_name(residual), True)
        # Unrecognized titles keep their text verbatim as the name
        return ParsedTitle(self._default_kind, text or self._placeholder_name, False)

    def _clean_name(self, text: str) -> str:
        name = " ".join(_SEPARATORS.sub(" ", text).split())
        return name or self._placeholder_name
