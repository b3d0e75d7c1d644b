"""Tests for the event-title parser used by Import."""
from __future__ import annotations

import re

import pytest

from clinicsync.scheduling.title_parser import (
    PLACEHOLDER_NAME,
    KindPattern,
    TitleParser,
)


class TestDefaultPatterns:
    parser = TitleParser()

    @pytest.mark.parametrize("title,kind,name", [
        ("Retorno - João Silva", "retorno", "João Silva"),
        ("Consulta: Maria Souza", "consulta", "Maria Souza"),
        ("PROCEDIMENTO - Ana", "procedimento", "Ana"),
        ("Avaliação - Pedro", "avaliacao", "Pedro"),
        ("avaliacao - Pedro", "avaliacao", "Pedro"),
        ("Emergencia Carla", "emergencia", "Carla"),
    ])
    def test_known_kinds(self, title, kind, name):
        parsed = self.parser.parse(title)
        assert parsed.kind == kind
        assert parsed.subject_name == name
        assert parsed.matched

    def test_first_pattern_wins(self):
        parsed = self.parser.parse("Consulta de retorno - Bia")
        assert parsed.kind == "consulta"
        assert parsed.subject_name == "de retorno Bia"

    def test_keyword_only_title_uses_placeholder(self):
        parsed = self.parser.parse("Retorno -")
        assert parsed.kind == "retorno"
        assert parsed.subject_name == PLACEHOLDER_NAME

    def test_unrecognized_title_keeps_text_with_generic_kind(self):
        parsed = self.parser.parse("Reunião de equipe")
        assert parsed.kind == "consulta"
        assert parsed.subject_name == "Reunião de equipe"
        assert not parsed.matched

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_empty_title_uses_placeholder(self, title):
        parsed = self.parser.parse(title)
        assert parsed.subject_name == PLACEHOLDER_NAME
        assert parsed.kind == "consulta"


class TestCustomPatterns:
    def test_alternative_convention(self):
        parser = TitleParser(
            [KindPattern(re.compile(r"\[follow-up\]", re.IGNORECASE), "retorno")],
            default_kind="outro",
            placeholder_name="Unknown",
        )
        assert parser.parse("[Follow-up] Jane Doe").kind == "retorno"
        assert parser.parse("[Follow-up] Jane Doe").subject_name == "Jane Doe"
        assert parser.parse("Lunch").kind == "outro"
        assert parser.parse("").subject_name == "Unknown"
