"""
Unit tests for the layout (coordinate-based) generator.
"""

import pytest

from field_extraction.candidates import FieldName, LayoutGenerator, Source, ValueKind
from field_extraction.candidates.layout_generator import group_lines, value_spans
from field_extraction.document import Page, Token


def page(*words):
    """Single page from (text, x0, top, x1, bottom) tuples."""
    return Page(0, tuple(Token(text, 0, (x0, top, x1, bottom)) for text, x0, top, x1, bottom in words))


@pytest.fixture
def generator():
    return LayoutGenerator(score=0.8, max_right_distance=320.0, max_below_distance=40.0)


def by_field(candidates):
    return {c.field: c.value for c in candidates}


class TestLineGrouping:
    """Tokens to lines and value spans."""

    def test_tokens_on_same_row_form_one_line(self):
        lines = group_lines(page(
            ("HT", 82, 700, 95, 710),
            ("Total", 50, 701, 80, 711),
            ("Date", 50, 100, 75, 110),
        ).tokens)
        assert [line.text for line in lines] == ["Date", "Total HT"]

    def test_split_amount_is_merged(self):
        line = group_lines(page(
            ("1", 300, 700, 305, 710),
            ("000,00", 308, 700, 340, 710),
            ("€", 342, 700, 348, 710),
        ).tokens)[0]
        spans = value_spans(line)
        assert len(spans) == 1
        assert spans[0].kind is ValueKind.NUMBER
        assert spans[0].value == 1000.0

    def test_distant_numbers_stay_apart(self):
        line = group_lines(page(
            ("2", 100, 700, 105, 710),
            ("500,00", 200, 700, 240, 710),
        ).tokens)[0]
        assert [span.value for span in value_spans(line)] == [2.0, 500.0]


class TestLayoutGenerator:
    """Label/value pairing."""

    def test_amount_right_of_label(self, generator):
        candidates = generator.generate([page(
            ("Total", 50, 700, 80, 710),
            ("HT", 82, 700, 95, 710),
            ("1", 300, 700, 305, 710),
            ("000,00", 308, 700, 340, 710),
            ("€", 342, 700, 348, 710),
        )])
        assert by_field(candidates) == {FieldName.HT: 1000.0}
        assert candidates[0].source is Source.LAYOUT
        assert candidates[0].score == 0.8

    def test_date_right_of_label(self, generator):
        candidates = generator.generate([page(
            ("Date", 50, 100, 75, 110),
            ("05/03/2024", 80, 100, 130, 110),
        )])
        assert by_field(candidates) == {FieldName.DOCUMENT_DATE: "2024-03-05"}

    def test_amount_below_label(self, generator):
        candidates = generator.generate([page(
            ("Total", 400, 200, 425, 210),
            ("TTC", 427, 200, 445, 210),
            ("1", 410, 215, 415, 225),
            ("200,00", 418, 215, 450, 225),
        )])
        assert by_field(candidates) == {FieldName.TTC: 1200.0}

    def test_value_kind_must_match_field(self, generator):
        """A rate label takes the percentage; the VAT amount label finds no amount."""
        candidates = generator.generate([page(
            ("TVA", 50, 300, 70, 310),
            ("20", 80, 300, 90, 310),
            ("%", 92, 300, 98, 310),
        )])
        assert by_field(candidates) == {FieldName.TVA_PCT: 20.0}

    def test_value_too_far_right(self):
        generator = LayoutGenerator(max_right_distance=100.0)
        candidates = generator.generate([page(
            ("Total", 50, 700, 80, 710),
            ("HT", 82, 700, 95, 710),
            ("1000,00", 300, 700, 340, 710),
        )])
        assert candidates == []

    def test_pages_without_tokens(self, generator):
        assert generator.generate([]) == []
        assert generator.generate([Page(0)]) == []
