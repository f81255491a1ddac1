"""
End-to-end tests of the extraction engine.

Recognition runs against fake backends; PDFs and workbooks are built in
memory.
"""

import json
import threading

import pytest

from field_extraction import ExtractionEngine, ExtractionResult
from field_extraction.trace import StepStatus


@pytest.fixture
def engine(backend_factory, summary_text):
    return ExtractionEngine(engine_factory=backend_factory({
        "single_block": summary_text,
        "sparse_text": summary_text,
        "automatic": summary_text,
    }))


def step_names(result):
    return [r.step_name for r in result.trace if r.status is not StepStatus.START]


class TestExtractText:
    """Pipeline on already acquired text."""

    def test_recap_block(self, engine, summary_text):
        result = engine.extract_text(summary_text)
        fs = result.field_set
        assert fs.ht == 1000.0
        assert fs.tva_pct == 20.0
        assert fs.tva_amount == 200.0
        assert fs.ttc == 1200.0
        assert fs.currency == "EUR"
        assert result.totals_ok is True
        assert result.confidence == 0.75
        assert step_names(result) == [
            "pattern", "layout", "proximity", "arbitration", "repair", "confidence"
        ]

    def test_layout_without_pages_is_no_match(self, engine, summary_text):
        result = engine.extract_text(summary_text)
        layout = [r for r in result.trace if r.step_name == "layout"][-1]
        assert layout.status is StepStatus.NO_MATCH

    def test_swapped_totals_are_repaired(self, engine):
        result = engine.extract_text("Total HT : 1 200,00\nTotal TTC : 1 000,00")
        assert (result.field_set.ht, result.field_set.ttc) == (1000.0, 1200.0)
        repair = [r for r in result.trace if r.step_name == "repair"][-1]
        assert 'swap_ht_ttc' in repair.metrics['actions']

    def test_needs_review_follows_module_threshold(self, engine, summary_text):
        assert engine.extract_text(summary_text, "invoice").needs_review() is True
        assert engine.extract_text(summary_text, "tender").needs_review() is False

    def test_unknown_module_defaults_to_invoice(self, engine, summary_text):
        assert engine.extract_text(summary_text, "grocery").module == "invoice"

    def test_empty_text(self, engine):
        result = engine.extract_text("")
        assert result.field_set.is_empty
        assert result.confidence == 0.3
        arbitration = [r for r in result.trace if r.step_name == "arbitration"][-1]
        assert arbitration.status is StepStatus.NO_MATCH

    def test_failing_generator_does_not_stop_the_others(self, engine, summary_text, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("pattern bank exploded")

        monkeypatch.setattr(engine.pattern_generator, "generate", broken)
        result = engine.extract_text(summary_text)

        pattern = [r for r in result.trace if r.step_name == "pattern"][-1]
        assert pattern.status is StepStatus.FAILED
        assert result.field_set.ht == 1000.0
        assert result.field_set.ttc == 1200.0

    def test_concurrent_calls_are_independent(self, engine):
        texts = {
            index: f"Total HT {index}00,00 €\nTVA 20 %"
            for index in range(1, 9)
        }
        results = {}

        def worker(index):
            results[index] = engine.extract_text(texts[index])

        threads = [threading.Thread(target=worker, args=(i,)) for i in texts]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        for index, result in results.items():
            assert result.field_set.ht == index * 100.0
            assert result.field_set.ttc == index * 120.0


class TestExtract:
    """Full pipeline from bytes."""

    def test_text_pdf(self, engine, make_pdf):
        content = make_pdf(["Total HT 1 000,00 EUR", "TVA 20 %", "Total TTC 1 200,00 EUR"])
        result = engine.extract(content, "facture.pdf", "invoice")
        assert result.modality == "text-pdf"
        assert result.field_set.ht == 1000.0
        assert result.field_set.ttc == 1200.0
        assert result.field_set.tva_pct == 20.0
        assert result.totals_ok is True

    def test_raster_image(self, engine, png_bytes):
        result = engine.extract(png_bytes, "ticket.png", "expense")
        assert result.modality == "raster-image"
        assert result.field_set.ttc == 1200.0
        assert result.totals_ok is True
        assert "ocr" in step_names(result)

    def test_csv_uses_tabular_inference_only(self, engine):
        content = "Désignation;Total HT;TVA;Total TTC\nConseil;1000,00;200,00;1200,00\n".encode("utf-8")
        result = engine.extract(content, "export.csv", "table")
        assert result.modality == "csv"
        assert result.field_set.ht == 1000.0
        assert result.field_set.ttc == 1200.0
        assert result.field_set.tva_pct == 20.0
        names = step_names(result)
        assert "tabular_inference" in names
        assert "pattern" not in names

    def test_xlsx(self, engine, make_xlsx):
        content = make_xlsx([
            ["Désignation", "Montant HT", "Montant TTC"],
            ["Licence", 1000.0, 1200.0],
        ])
        result = engine.extract(content, "export.xlsx", "table")
        assert result.modality == "xlsx"
        assert result.field_set.ht == 1000.0
        assert result.totals_ok is True


class TestDegradedResults:
    """The engine never raises."""

    def test_empty_payload(self, engine):
        result = engine.extract(b"", "facture.pdf")
        assert isinstance(result, ExtractionResult)
        assert result.field_set.is_empty
        assert result.confidence == 0.0
        assert result.success is False
        assert result.trace[-1].step_name == "extraction"
        assert result.trace[-1].status is StepStatus.FAILED

    def test_unsupported_payload(self, engine):
        result = engine.extract(b"just some words", "notes.txt")
        assert result.confidence == 0.0
        assert any(r.step_name == "classify" and r.status is StepStatus.FAILED for r in result.trace)

    def test_wrong_content_type(self, engine):
        result = engine.extract("not bytes", "facture.pdf")
        assert result.confidence == 0.0
        assert result.field_set.is_empty

    def test_none_content(self, engine):
        assert engine.extract(None).confidence == 0.0


class TestSerialization:
    """Structured output."""

    def test_to_json(self, engine, summary_text):
        data = json.loads(engine.extract_text(summary_text).to_json())
        assert data['field_set']['ttc'] == 1200.0
        assert data['field_set']['siret'] is None
        assert data['confidence'] == 0.75
        assert data['needs_review'] is True
        assert data['trace'][0]['step'] == "pattern"
        assert data['trace'][0]['status'] == "start"
