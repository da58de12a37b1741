import pytest

from quillpress.domain.slugs import base_slug, candidates, first_free, is_valid_slug, slugify


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Hello World", "hello-world"),
        ("  --Hello,   World!!--  ", "hello-world"),
        ("Crème Brûlée à la carte", "creme-brulee-a-la-carte"),
        ("C++ & Rust: 2024", "c-rust-2024"),
        ("ALL CAPS", "all-caps"),
        ("!!!", ""),
        ("", ""),
        ("日本語", ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_output_is_always_valid():
    for text in ["a b", "Ünïcödé", "x--y", "_under_score_"]:
        slug = slugify(text)
        assert slug == "" or is_valid_slug(slug)


def test_truncates_at_separator():
    assert slugify("alpha beta gamma", max_length=12) == "alpha-beta"
    assert slugify("alpha beta gamma", max_length=10) == "alpha-beta"
    assert slugify("alphabetagamma", max_length=5) == "alpha"


def test_base_slug_falls_back():
    assert base_slug("???", "untitled") == "untitled"
    assert base_slug("Real Title", "untitled") == "real-title"


def test_candidates_are_ordered():
    gen = candidates("post")
    assert [next(gen) for _ in range(4)] == ["post", "post-1", "post-2", "post-3"]


def test_first_free():
    assert first_free("post", []) == "post"
    assert first_free("post", ["post", "post-1", "post-3"]) == "post-2"


@pytest.mark.parametrize("slug", ["a", "a-b", "abc-123"])
def test_valid_slugs(slug):
    assert is_valid_slug(slug)


@pytest.mark.parametrize("slug", ["", "-a", "a-", "a--b", "A", "a b", "a_b"])
def test_invalid_slugs(slug):
    assert not is_valid_slug(slug)
