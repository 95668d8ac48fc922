"""Tests for tool-call leakage removal."""

from __future__ import annotations

import pytest

from concierge.sanitizer import LEAKAGE_SHAPES, sanitize, strip_shape

_SHAPES = {shape.name: shape for shape in LEAKAGE_SHAPES}


class TestShapes:
    """One recognizer per leakage shape, each exercised on its own."""

    def test_xml_tag_block(self):
        text = 'Olá! <tool_call>{"name": "showProjects"}</tool_call>'
        assert sanitize(text) == "Olá!"
        assert "<tool_call>" not in strip_shape(_SHAPES["xml_tag"], text)

    def test_stray_xml_tag(self):
        assert sanitize("Claro </function_calls> vamos lá.") == "Claro vamos lá."

    def test_fenced_block(self):
        text = "Veja abaixo:\n```tool_call\nshowProjects()\n```"
        assert sanitize(text) == "Veja abaixo:"

    def test_unterminated_fenced_block(self):
        assert sanitize("Certo.\n```tool_code\nshowProducts(") == "Certo."

    def test_bracket_marker(self):
        assert sanitize("[showProjects] Aqui estão nossos projetos.") == (
            "Aqui estão nossos projetos."
        )
        assert sanitize("[TOOL_CALLS] Um momento.") == "Um momento."

    def test_call_syntax(self):
        assert sanitize('Anotado. saveClientNote("Quero mais informações")') == "Anotado."

    def test_call_syntax_with_namespace_and_nested_parens(self):
        text = 'default_api.scheduleMeeting(type="visit", address="Rua X (fundos)") Pronto!'
        assert sanitize(text) == "Pronto!"

    def test_json_fragment(self):
        text = 'Claro {"name": "showProjects", "args": {"category": "residencial"}} aqui.'
        assert sanitize(text) == "Claro aqui."

    def test_json_array_fragment(self):
        text = 'Ok [{"name": "getSocialLinks", "arguments": {}}]'
        assert sanitize(text) == "Ok"

    def test_bold_mention(self):
        assert sanitize("Posso usar **showProjects** agora.") == "Posso usar agora."
        assert sanitize("Use `navigateSite` se quiser.") == "Use se quiser."

    def test_boilerplate_portuguese(self):
        assert sanitize("Vou usar a ferramenta de agenda. Qual dia prefere?") == (
            "Qual dia prefere?"
        )

    def test_boilerplate_english(self):
        assert sanitize("Let me call the scheduling tool now. Pronto.") == "Pronto."

    def test_standalone_line(self):
        result = sanitize("Claro!\n- showProjects:\nVeja abaixo.")
        assert "showProjects" not in result
        assert result.startswith("Claro!")
        assert result.endswith("Veja abaixo.")

    def test_trailing_name(self):
        assert sanitize("Aqui estão os projetos showProjects") == "Aqui estão os projetos"

    def test_every_shape_is_named_once(self):
        names = [shape.name for shape in LEAKAGE_SHAPES]
        assert len(names) == len(set(names))
        assert set(names) == {
            "xml_tag", "fenced_block", "bracket_marker", "call_syntax",
            "json_fragment", "bold_mention", "boilerplate", "standalone_line",
            "trailing_name",
        }


class TestSanitize:
    def test_plain_text_untouched(self):
        text = "Olá! Como posso ajudar com o seu projeto hoje?"
        assert sanitize(text) == text

    def test_regular_words_are_kept(self):
        text = "Temos projetos residenciais e produtos exclusivos."
        assert sanitize(text) == text

    def test_only_leakage_becomes_empty(self):
        assert sanitize('saveClientNote("Quero mais informações")') == ""

    @pytest.mark.parametrize("value", [None, 42, ["x"]])
    def test_non_string_input(self, value):
        assert sanitize(value) == ""

    def test_whitespace_is_normalized(self):
        assert sanitize("Olá  ,   tudo bem ?\n\n\n\nSim.  ") == "Olá, tudo bem?\n\nSim."

    @pytest.mark.parametrize(
        "text",
        [
            "Olá! <tool_call>x</tool_call> Tudo bem?",
            'showProjects(category="x") **getSocialLinks** showProducts',
            "[navigateSite] ```tool_call\n{}\n``` Vou chamar a função agora.",
            'Texto {"name": "a", "args": {"b": 1}} fim showOfficeMap',
            "  espaços   demais  .  ",
            "",
        ],
    )
    def test_idempotent(self, text):
        once = sanitize(text)
        assert sanitize(once) == once
