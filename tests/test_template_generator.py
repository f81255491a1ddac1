"""
Unit tests for the supplier template generator and its use by the engine.
"""

import pytest

from field_extraction import ExtractionEngine
from field_extraction.arbitration import select
from field_extraction.candidates import Candidate, FieldName, Source, SupplierTemplate, TemplateGenerator
from field_extraction.candidates.models import ValueKind
from field_extraction.candidates.template_generator import read_value
from field_extraction.trace import StepStatus
from field_extraction.utils.exceptions import InvalidTemplateError

SIRET = "12345678900012"

INVOICE_TEXT = (
    "SARL Dupont Conseil\n"
    "SIRET : 123 456 789 00012\n"
    "Réf. pièce : DC-2024-118\n"
    "Total HT 900,00 €\n"
    "Montant hors taxes 1 000,00\n"
    "Taux appliqué 20 %\n"
    "Net à régler 1 200,00\n"
)

DUPONT_ANCHORS = {
    "ht": "Montant hors taxes",
    "tva_pct": "Taux appliqué",
    "ttc": "Net à régler",
    "invoice_number": ["N° pièce", "Réf. pièce"],
}


@pytest.fixture
def generator():
    return TemplateGenerator(score=0.85, partial_score=0.5, min_fields=3, window=50)


def by_field(candidates):
    return {c.field: c.value for c in candidates}


class TestTemplateLookup:
    """Choosing the supplier's template."""

    def test_by_siret(self, generator):
        template = generator.find_template({SIRET: DUPONT_ANCHORS}, siret=SIRET)
        assert template.key == SIRET

    def test_siret_key_may_contain_spaces(self, generator):
        template = generator.find_template({"123 456 789 00012": DUPONT_ANCHORS}, siret=SIRET)
        assert template is not None

    def test_by_supplier_name_ignores_case(self, generator):
        template = generator.find_template({"dupont": DUPONT_ANCHORS}, supplier="Dupont Conseil")
        assert template.key == "dupont"

    def test_siret_template_is_preferred(self, generator):
        templates = {"Dupont": {"ht": "Total HT"}, SIRET: DUPONT_ANCHORS}
        template = generator.find_template(templates, siret=SIRET, supplier="Dupont Conseil")
        assert template.key == SIRET

    def test_siret_template_needs_the_siret(self, generator):
        assert generator.find_template({SIRET: DUPONT_ANCHORS}, supplier="Dupont Conseil") is None

    def test_no_templates(self, generator):
        assert generator.find_template(None, siret=SIRET) is None
        assert generator.find_template({}, siret=SIRET) is None

    def test_unknown_field_is_rejected(self):
        with pytest.raises(InvalidTemplateError):
            SupplierTemplate.from_mapping("Dupont", {"colour": "Couleur"})

    def test_empty_anchor_list_is_rejected(self):
        with pytest.raises(InvalidTemplateError):
            SupplierTemplate.from_mapping("Dupont", {"ht": []})

    def test_anchors_must_be_a_mapping(self):
        with pytest.raises(InvalidTemplateError):
            SupplierTemplate.from_mapping("Dupont", ["Montant HT"])


class TestAnchorReading:
    """Values read after the anchor labels."""

    def test_anchor_hit(self, generator):
        candidates = generator.generate(INVOICE_TEXT, {SIRET: DUPONT_ANCHORS}, siret=SIRET)
        assert by_field(candidates) == {
            FieldName.HT: 1000.0,
            FieldName.TVA_PCT: 20.0,
            FieldName.TTC: 1200.0,
            FieldName.INVOICE_NUMBER: "DC-2024-118",
        }
        assert all(c.score == 0.85 for c in candidates)
        assert all(c.source is Source.TEMPLATE for c in candidates)

    def test_fewer_fields_than_required(self, generator):
        anchors = {"ht": "Montant hors taxes", "ttc": "Net à régler", "document_date": "Date de pièce"}
        candidates = generator.generate(INVOICE_TEXT, {"Dupont": anchors}, supplier="Dupont Conseil")
        assert by_field(candidates) == {FieldName.HT: 1000.0, FieldName.TTC: 1200.0}
        assert all(c.score == 0.5 for c in candidates)

    def test_no_matching_template(self, generator):
        templates = {"Atelier Martin": DUPONT_ANCHORS, "98765432100019": DUPONT_ANCHORS}
        assert generator.generate(INVOICE_TEXT, templates, siret=SIRET, supplier="Dupont Conseil") == []

    def test_anchor_absent_from_text(self, generator):
        assert generator.generate(INVOICE_TEXT, {SIRET: {"ht": "Base imposable"}}, siret=SIRET) == []

    def test_value_must_fall_in_the_window(self):
        generator = TemplateGenerator(window=5)
        text = "Montant hors taxes :            1 000,00"
        assert generator.generate(text, {SIRET: {"ht": "Montant hors taxes"}}, siret=SIRET) == []

    def test_read_value_by_kind(self):
        assert read_value(ValueKind.NUMBER, " : 1 234,56 € TTC") == 1234.56
        assert read_value(ValueKind.PERCENTAGE, " 5,5 %") == 5.5
        assert read_value(ValueKind.PERCENTAGE, " 150 %") is None
        assert read_value(ValueKind.DATE, " du 05/03/2024") == "2024-03-05"
        assert read_value(ValueKind.TEXT, " : FA-77.") == "FA-77"
        assert read_value(ValueKind.NUMBER, " : néant") is None

    def test_template_wins_ties(self):
        layout = Candidate(FieldName.HT, 900.0, 0.8, Source.LAYOUT)
        template = Candidate(FieldName.HT, 1000.0, 0.8, Source.TEMPLATE)
        assert select([layout, template]) is template


class TestEngineTemplates:
    """Templates passed through the engine."""

    @pytest.fixture
    def engine(self, backend_factory):
        return ExtractionEngine(engine_factory=backend_factory({}))

    def test_template_overrides_generic_generators(self, engine):
        result = engine.extract_text(INVOICE_TEXT, templates={SIRET: DUPONT_ANCHORS})
        fs = result.field_set
        assert fs.siret == SIRET
        assert fs.ht == 1000.0
        assert fs.ttc == 1200.0
        assert fs.invoice_number == "DC-2024-118"
        assert result.totals_ok is True

        names = [r.step_name for r in result.trace if r.status is not StepStatus.START]
        assert names[:4] == ["pattern", "template", "layout", "proximity"]

    def test_without_templates_generic_values_stand(self, engine):
        result = engine.extract_text(INVOICE_TEXT)
        assert result.field_set.ht == 900.0
        assert "template" not in [r.step_name for r in result.trace]

    def test_invalid_template_fails_only_its_step(self, engine):
        result = engine.extract_text(INVOICE_TEXT, templates={SIRET: {"colour": "Couleur"}})
        template = [r for r in result.trace if r.step_name == "template"][-1]
        assert template.status is StepStatus.FAILED
        assert result.field_set.ht == 900.0

    def test_extract_from_bytes(self, engine):
        content = "Désignation;Total HT;Total TTC\nConseil;1000,00;1200,00\n".encode("utf-8")
        result = engine.extract(content, "export.csv", "table", templates={SIRET: DUPONT_ANCHORS})
        assert result.field_set.ht == 1000.0
        assert "template" not in [r.step_name for r in result.trace]
