from models.document import PageText
from rag_services.highlight import extract_keywords, locate_source, split_sentences


PAGES = [
    PageText(pageNumber=1, text="Mitochondria are the powerhouse of the cell.\nThey produce ATP through respiration."),
    PageText(pageNumber=2, text="Ribosomes assemble proteins. The Golgi apparatus packages   proteins for export."),
    PageText(pageNumber=3, text=""),
]


def test_split_sentences():
    assert split_sentences("One. Two?  Three!\nFour") == ["One.", "Two?", "Three!", "Four"]
    assert split_sentences("   ") == []


def test_extract_keywords_skips_stop_words_and_short_words():
    keywords = extract_keywords("The proteins and the proteins which were in the cell membrane")
    assert keywords[0] == "proteins"
    assert "which" not in keywords
    assert "the" not in keywords
    assert "membrane" in keywords


def test_exact_match_normalizes_whitespace_and_case():
    highlight = locate_source("the golgi apparatus packages proteins", PAGES)
    assert highlight.pageNumber == 2
    assert highlight.method == "exact"
    assert highlight.score == 100.0
    assert highlight.text == "The Golgi apparatus packages proteins"


def test_preferred_page_is_searched_first():
    pages = [
        PageText(pageNumber=1, text="Repeated sentence here."),
        PageText(pageNumber=2, text="Repeated sentence here."),
    ]
    assert locate_source("Repeated sentence here.", pages).pageNumber == 1
    assert locate_source("Repeated sentence here.", pages, preferred_page=2).pageNumber == 2


def test_fuzzy_match_tolerates_extraction_noise():
    highlight = locate_source("Mitochondria are the power-house of the cel", PAGES)
    assert highlight is not None
    assert highlight.pageNumber == 1
    assert highlight.method == "fuzzy"
    assert highlight.score >= 70
    assert "Mitochondria" in highlight.text


def test_keyword_fallback_picks_best_sentence():
    highlight = locate_source(
        "Which organelle handles export packaging? Packages, proteins, apparatus.",
        PAGES,
        min_score=101,
    )
    assert highlight.method == "keyword"
    assert highlight.pageNumber == 2
    assert highlight.text.startswith("The Golgi apparatus")


def test_no_match_returns_none():
    assert locate_source("", PAGES) is None
    assert locate_source("anything", None) is None
    assert locate_source("zzz qqq", PAGES, min_score=101) is None


def test_offsets_point_into_raw_page_text():
    raw = PAGES[1].text

    exact = locate_source("the golgi apparatus packages proteins", PAGES)
    assert raw[exact.start:exact.end] == "The Golgi apparatus packages   proteins"

    fuzzy = locate_source("Golgi aparatus packages proteins for exprt", PAGES, preferred_page=2)
    assert fuzzy.method == "fuzzy"
    assert " ".join(raw[fuzzy.start:fuzzy.end].split()) == fuzzy.text

    keyword = locate_source(
        "Which organelle handles export packaging? Packages, proteins, apparatus.",
        PAGES,
        min_score=101,
    )
    assert " ".join(raw[keyword.start:keyword.end].split()) == keyword.text


def test_offsets_skip_leading_whitespace_and_newlines():
    pages = [PageText(pageNumber=1, text="  \n Intro line.\n\nTarget   sentence\there.")]
    highlight = locate_source("target sentence here", pages)
    assert pages[0].text[highlight.start:highlight.end] == "Target   sentence\there"
