import pytest

from services.speech.text_normalizer import (
    EMOJI_RANGES,
    contains_emoji,
    normalize_for_speech,
    strip_residual_markup,
)

MARKDOWN_SAMPLES = [
    "## Title\n- item one\n- item two\n**bold** text",
    "## 🔥 Crypto Analyse\n- BTC: $76K 📉\n- SOL: -44%\n---\n### Oorzaken:\n> **Let op:** _tarieven_",
    "| Coin | Prijs |\n|------|-------|\n| BTC | 76000 |",
    "Kijk hier:\n```python\nprint('hi')\n```\nKlaar.",
    "1. Eerste\n2) Tweede\n10. Tiende",
    "* **Vet** punt\n* *schuin* punt\n+ plus punt",
    "Zie [de docs](https://example.com/docs) of https://foo.bar/x voor meer.",
    "BTC → ETH => SOL",
    "> > Genest citaat met `code` en ~~doorgestreept~~",
    "Tekst ,, met . . dubbele,, tekens...",
    "[- link als lijst](http://x.y)\n[1. genummerd](http://x.y)",
    "snake_case en \\*ontsnapt\\* en #hashtag",
    "   \n\n\n\nVeel\t\t  witruimte   \n\n\n\n",
    "Gewone zin zonder opmaak.",
    "",
]


def test_heading_list_and_bold_example():
    result = normalize_for_speech("## Title\n- item one\n- item two\n**bold** text")

    assert "#" not in result
    assert "*" not in result
    assert not any(line.lstrip().startswith("-") for line in result.splitlines())
    for word in ("Title", "item one", "item two", "bold", "text"):
        assert word in result
    assert result == "Title.\nitem one\nitem two\nbold text"


@pytest.mark.parametrize("text", MARKDOWN_SAMPLES)
def test_normalize_is_idempotent(text):
    once = normalize_for_speech(text)
    assert normalize_for_speech(once) == once


@pytest.mark.parametrize("text", MARKDOWN_SAMPLES)
def test_output_has_no_markup_tokens(text):
    result = normalize_for_speech(text)
    for token in ("#", "*", "`", "|", "~", "](", "```"):
        assert token not in result
    for line in result.splitlines():
        assert not line.startswith(("- ", "> ", "+ "))


def test_emoji_ranges_are_fully_removed():
    samples = []
    for start, end in EMOJI_RANGES:
        samples.extend({start, (start + end) // 2, end})
    text = "begin " + " ".join(chr(cp) for cp in samples) + " eind"

    result = normalize_for_speech(text)

    for char in result:
        assert not any(start <= ord(char) <= end for start, end in EMOJI_RANGES), hex(ord(char))
    assert result == "begin eind"
    assert not contains_emoji(result)


def test_emoji_sequences_with_joiners_and_flags():
    text = "Familie 👨‍👩‍👧 uit 🇳🇱 scoort 1️⃣ punt ✅"
    assert normalize_for_speech(text) == "Familie uit scoort 1 punt"


def test_headings_get_a_pause():
    assert normalize_for_speech("# Samenvatting\nDe markt daalt.") == "Samenvatting.\nDe markt daalt."
    assert normalize_for_speech("## Wat nu?") == "Wat nu?"
    assert normalize_for_speech("### Oorzaken:") == "Oorzaken:"


def test_code_blocks_are_dropped_entirely():
    result = normalize_for_speech("Kijk hier:\n```python\nprint('hi')\n```\nKlaar.")
    assert "print" not in result
    assert result.startswith("Kijk hier:")
    assert result.endswith("Klaar.")


def test_horizontal_rules_and_quotes():
    assert normalize_for_speech("Boven\n---\nOnder") == "Boven\n\nOnder"
    assert normalize_for_speech("Boven\n* * *\nOnder") == "Boven\n\nOnder"
    assert normalize_for_speech("> Dit is een citaat") == "Dit is een citaat"


def test_inline_emphasis_markers_keep_text():
    text = "Dit is *schuin*, __vet__, ~~weg~~ en `code`."
    assert normalize_for_speech(text) == "Dit is schuin, vet, weg en code."


def test_list_markers_are_removed():
    assert normalize_for_speech("1. Eerste\n2) Tweede\n10. Tiende") == "Eerste\nTweede\nTiende"
    assert normalize_for_speech("• punt een\n• punt twee") == "punt een\npunt twee"


def test_minus_sign_is_not_a_list_marker():
    assert normalize_for_speech("-5% vandaag") == "-5% vandaag"


def test_links_keep_labels_and_drop_urls():
    text = "Zie [de docs](https://example.com/docs) of https://foo.bar/x voor meer."
    assert normalize_for_speech(text) == "Zie de docs of voor meer."
    assert normalize_for_speech("![logo](a.png) Tekst") == "logo Tekst"


def test_tables_become_comma_separated_rows():
    text = "| Coin | Prijs |\n|------|-------|\n| BTC | 76000 |"
    assert normalize_for_speech(text) == "Coin, Prijs\nBTC, 76000"


def test_arrows_are_removed():
    assert normalize_for_speech("BTC → ETH => SOL") == "BTC ETH SOL"


def test_every_ascii_arrow_form_is_removed():
    assert normalize_for_speech("A <-> B <-- C --> D ==> E => F -> G") == "A B C D E F G"


@pytest.mark.parametrize("text", ["x <= 5", "Kosten >= 2 en <= 10", "a < b > c", "x<-5"])
def test_comparisons_are_not_arrows(text):
    assert normalize_for_speech(text) == text


def test_composite_reply():
    text = "## 🔥 Crypto Analyse\n- BTC: $76K 📉\n- SOL: -44%\n---\n### Oorzaken:\n> **Let op:** _tarieven_"
    assert normalize_for_speech(text) == "Crypto Analyse.\nBTC: $76K\nSOL: -44%\n\nOorzaken:\nLet op: tarieven"


def test_whitespace_is_collapsed():
    assert normalize_for_speech("   \n\n\n\nVeel\t\t  witruimte   \n\n\n\n") == "Veel witruimte"
    assert normalize_for_speech("Een\n\n\n\nTwee") == "Een\n\nTwee"


def test_duplicate_punctuation_is_collapsed():
    assert normalize_for_speech("Ja,, echt . . zeker") == "Ja, echt. zeker"


@pytest.mark.parametrize("text", [None, "", "   ", "\n\n"])
def test_empty_input_never_fails(text):
    assert normalize_for_speech(text) == ""


def test_strip_residual_markup():
    assert strip_residual_markup("**Vijftig** procent 🚀 meer.") == "Vijftig procent meer."
    assert strip_residual_markup("## Kop\nTekst") == "Kop.\nTekst"
    assert strip_residual_markup("") == ""
