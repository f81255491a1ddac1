"""
Extraction Engine Module.

Entry point of the field-extraction pipeline:

    Acquisition -> candidate generators -> arbitration -> arithmetic
    repair -> confidence -> ExtractionResult

Usage:
    from field_extraction import ExtractionEngine

    engine = ExtractionEngine()
    with open("facture.pdf", "rb") as f:
        result = engine.extract(f.read(), "facture.pdf", "invoice")

    print(result.field_set.ttc, result.confidence)

The engine never raises: acquisition failures, generator failures and
unexpected errors end up as failed steps in the trace, and a total
failure returns an all-null field set with confidence 0.0.

Author: ML Engineering Team
"""

import time
from typing import Any, Callable, List, Optional, Sequence, Union

from field_extraction.acquisition import AcquisitionRouter
from field_extraction.arbitration import Arbitrator, ConfidenceScorer, select
from field_extraction.candidates import (
    CandidatePool,
    LayoutGenerator,
    PatternGenerator,
    ProximityGenerator,
    TabularInference,
    TemplateGenerator,
)
from field_extraction.candidates.models import Candidate, FieldName
from field_extraction.candidates.template_generator import TemplateMapping
from field_extraction.document import AcquiredDocument, Document, ModuleHint, Page
from field_extraction.extraction_result import ExtractionResult, FieldSet
from field_extraction.ocr_engine import MultiPassRecognizer, RecognitionPool
from field_extraction.postprocessor import ArithmeticRepairer
from field_extraction.trace import StepStatus, TraceRecorder
from field_extraction.utils.logger import document_context, get_logger

# Initialize module logger
logger = get_logger(__name__)


class ExtractionEngine:
    """
    Document field-extraction and arbitration engine.

    One engine may serve many calls, sequentially or from several
    threads: the only state shared between calls is the recognition
    pool. Every call gets its own trace and candidate pool.

    Attributes:
        pool: Bounded pool of recognition backends.
        router: Acquisition router.
        arbitrator: Per-field voting.
        repairer: Arithmetic repair pass.
        scorer: Confidence scorer.

    Example:
        >>> engine = ExtractionEngine()
        >>> result = engine.extract_text("Total HT 1 000,00 €\\nTVA 20 %\\nTotal TTC 1 200,00 €")
        >>> result.field_set.tva_amount, result.totals_ok
        (200.0, True)
    """

    def __init__(
        self,
        pool: Optional[RecognitionPool] = None,
        engine_factory: Optional[Callable[[], Any]] = None,
        router: Optional[AcquisitionRouter] = None
    ) -> None:
        """
        Initialize the engine and its components from configuration.

        Args:
            pool: Recognition pool to share; created when None.
            engine_factory: Backend factory for a newly created pool
                (defaults to Tesseract).
            router: Acquisition router; built around the pool when None.
        """
        self.pool = pool or RecognitionPool(factory=engine_factory)
        self.router = router or AcquisitionRouter(MultiPassRecognizer(self.pool))

        self.pattern_generator = PatternGenerator()
        self.layout_generator = LayoutGenerator()
        self.proximity_generator = ProximityGenerator()
        self.tabular_inference = TabularInference()
        self.template_generator = TemplateGenerator()

        self.arbitrator = Arbitrator()
        self.repairer = ArithmeticRepairer()
        self.scorer = ConfidenceScorer()

        logger.info("ExtractionEngine initialized")

    def extract(
        self,
        content: bytes,
        source_hint: str = "",
        module: Union[ModuleHint, str] = ModuleHint.INVOICE,
        templates: Optional[TemplateMapping] = None
    ) -> ExtractionResult:
        """
        Extract the fields of a document.

        Args:
            content: Raw document bytes.
            source_hint: File name or MIME type.
            module: Module hint (invoice, expense, tender, table).
            templates: Supplier templates keyed by SIRET or supplier name,
                mapping field names to anchor labels.

        Returns:
            ExtractionResult; never raises.
        """
        started = time.time()
        trace = TraceRecorder()
        module_hint = ModuleHint.parse(module)

        with document_context(source_hint):
            try:
                document = Document(bytes(content or b""), source_hint or "", module_hint)
                logger.info(f"Extracting {document.size} bytes (module={module_hint.value})")

                acquired = self.router.acquire(document, trace)
                if not acquired.success:
                    return self._degraded(trace, module_hint, source_hint, acquired, started, acquired.error)

                return self._run(acquired, module_hint, trace, source_hint, started, templates)

            except Exception as e:
                logger.exception(f"Extraction failed: {e}")
                return self._degraded(trace, module_hint, source_hint, None, started, str(e))

    def extract_text(
        self,
        text: str,
        module: Union[ModuleHint, str] = ModuleHint.INVOICE,
        pages: Optional[Sequence[Page]] = None,
        source_hint: str = "text",
        templates: Optional[TemplateMapping] = None
    ) -> ExtractionResult:
        """
        Run the pipeline on already acquired text.

        Args:
            text: Raw document text.
            module: Module hint.
            pages: Optional positioned pages for the layout generator.
            source_hint: Name recorded in the result.
            templates: Supplier templates, as for extract().

        Returns:
            ExtractionResult; never raises.
        """
        started = time.time()
        trace = TraceRecorder()
        module_hint = ModuleHint.parse(module)
        acquired = AcquiredDocument(text=text or "", pages=list(pages or []))

        with document_context(source_hint):
            try:
                return self._run(acquired, module_hint, trace, source_hint, started, templates)
            except Exception as e:
                logger.exception(f"Extraction failed: {e}")
                return self._degraded(trace, module_hint, source_hint, acquired, started, str(e))

    def _run(
        self,
        acquired: AcquiredDocument,
        module: ModuleHint,
        trace: TraceRecorder,
        source_hint: str,
        started: float,
        templates: Optional[TemplateMapping] = None
    ) -> ExtractionResult:
        candidates = CandidatePool()

        if acquired.modality is not None and acquired.modality.is_tabular:
            self._generate("tabular_inference", lambda: self.tabular_inference.generate(acquired.rows),
                           candidates, trace)
        else:
            text = acquired.text
            self._generate("pattern", lambda: self.pattern_generator.generate(text, module), candidates, trace)
            if templates:
                self._generate("template", lambda: self._from_template(text, templates, candidates),
                               candidates, trace)
            self._generate("layout", lambda: self.layout_generator.generate(acquired.pages), candidates, trace)
            self._generate("proximity", lambda: self.proximity_generator.generate(text), candidates, trace)

        with trace.step("arbitration") as metrics:
            field_set = self.arbitrator.arbitrate(candidates)
            metrics['candidates'] = len(candidates)
            metrics['by_source'] = candidates.count_by_source()
            metrics['fields'] = list(field_set.present_fields)
            if field_set.is_empty:
                metrics['status'] = StepStatus.NO_MATCH

        with trace.step("repair") as metrics:
            outcome = self.repairer.repair(field_set)
            metrics['actions'] = list(outcome.actions)
            metrics['extracted_totals_ok'] = outcome.extracted_consistency.totals_ok
            metrics['totals_ok'] = outcome.totals_ok
            metrics['consistency'] = outcome.consistency.to_dict()
            if not outcome.totals_ok:
                metrics['status'] = StepStatus.PARTIAL

        with trace.step("confidence") as metrics:
            confidence = self.scorer.score(outcome.field_set, outcome.totals_ok, acquired.text)
            metrics['confidence'] = confidence
            metrics['signals'] = [
                name for name, on in self.scorer.signals(
                    outcome.field_set, outcome.totals_ok, acquired.text
                ).items() if on
            ]

        result = ExtractionResult(
            field_set=outcome.field_set,
            confidence=confidence,
            trace=trace.records,
            totals_ok=outcome.totals_ok,
            modality=acquired.modality.value if acquired.modality else None,
            module=module.value,
            source=source_hint,
            text_length=len(acquired.text),
            processing_time=round(time.time() - started, 4),
        )
        logger.info(f"Extracted {len(outcome.field_set.present_fields)} field(s), confidence={confidence:.2f}")
        return result

    def _generate(
        self,
        name: str,
        produce: Callable[[], List[Candidate]],
        candidates: CandidatePool,
        trace: TraceRecorder
    ) -> None:
        """Run one generator; its failure is traced and does not stop the others."""
        try:
            with trace.step(name) as metrics:
                produced = produce()
                metrics['candidates'] = len(produced)
                if not produced:
                    metrics['status'] = StepStatus.NO_MATCH
        except Exception as e:
            logger.warning(f"Generator '{name}' failed: {e}")
            return
        candidates.extend(produced)

    def _from_template(
        self,
        text: str,
        templates: TemplateMapping,
        candidates: CandidatePool
    ) -> List[Candidate]:
        """Template candidates for the SIRET and supplier proposed so far."""
        siret = select(candidates.for_field(FieldName.SIRET))
        supplier = select(candidates.for_field(FieldName.SUPPLIER))
        return self.template_generator.generate(
            text,
            templates,
            siret=siret.value if siret else None,
            supplier=supplier.value if supplier else None,
        )

    @staticmethod
    def _degraded(
        trace: TraceRecorder,
        module: ModuleHint,
        source_hint: str,
        acquired: Optional[AcquiredDocument],
        started: float,
        reason: Optional[str]
    ) -> ExtractionResult:
        """All-null result with minimum confidence."""
        trace.failed("extraction", reason=reason or "unknown error")
        modality = acquired.modality if acquired is not None else None
        return ExtractionResult(
            field_set=FieldSet(),
            confidence=0.0,
            trace=trace.records,
            totals_ok=False,
            modality=modality.value if modality else None,
            module=module.value,
            source=source_hint,
            text_length=len(acquired.text) if acquired is not None else 0,
            processing_time=round(time.time() - started, 4),
        )
