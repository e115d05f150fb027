"""
Scrub Pipeline Orchestrator

Runs the stages in dependency order for one estimate:
1. Parse repair lines
2. Resolve vehicle identity (explicit inputs, description, VIN, estimate text)
3. Build the equipment profile
4. Resolve calibration triggers and methods
5. Reconcile against the secondary report
"""

import time
from pathlib import Path
from typing import Optional

import pandas as pd
from loguru import logger

from adas_scrub.config.settings import (
    OUTPUT_DIR,
    SCRUB_VERSION,
    EngineSettings,
    ensure_output_dirs,
    get_engine_settings,
)
from adas_scrub.src.models import (
    CalibrationSystem,
    ReconciliationReport,
    ReconciliationStatus,
    ScrubRequest,
    ScrubResult,
    ScrubSummary,
    UntriggeredSystem,
    VehicleIdentity,
)
from adas_scrub.src.reference import ReferenceTables, get_reference_tables
from adas_scrub.src.stages.calibration_types import CalibrationTypeResolver
from adas_scrub.src.stages.equipment import EquipmentProfiler
from adas_scrub.src.stages.estimate_parser import YEAR_PATTERN, EstimateParser
from adas_scrub.src.stages.oem_reference import CsvOEMReferenceProvider, OEMReferenceProvider
from adas_scrub.src.stages.reconciler import Reconciler
from adas_scrub.src.stages.triggers import TriggerResolver
from adas_scrub.src.stages.vin import VinDecoder

BATCH_SUMMARY_FILE = "scrub_summary.csv"


def _year_in(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    m = YEAR_PATTERN.search(text)
    return int(m.group(1)) if m else None


def _coerce_year(year) -> Optional[int]:
    if year is None or year == "":
        return None
    try:
        return int(year)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric year {year!r}")
        return None


class ScrubEngine:
    """Wires the stages together over one set of reference tables."""

    def __init__(
        self,
        tables: ReferenceTables | None = None,
        settings: EngineSettings | None = None,
        oem_provider: OEMReferenceProvider | None = None,
    ):
        self.tables = tables or get_reference_tables()
        self.settings = settings or get_engine_settings()
        self.parser = EstimateParser(self.tables)
        self.vin_decoder = VinDecoder(self.tables, checksum_strict=self.settings.vin_checksum_strict)
        self.profiler = EquipmentProfiler(self.tables, self.settings)
        self.type_resolver = CalibrationTypeResolver(self.tables)
        self.trigger_resolver = TriggerResolver(self.tables, self.type_resolver, self.profiler)
        self.reconciler = Reconciler(self.tables, self.settings)
        self.oem_provider = oem_provider or CsvOEMReferenceProvider(self.tables)

    def resolve_vehicle(
        self,
        estimate_text: Optional[str],
        vin: Optional[str] = None,
        brand: Optional[str] = None,
        year=None,
        vehicle_description: Optional[str] = None,
    ) -> VehicleIdentity:
        """
        Brand: explicit > vehicle description > VIN > estimate text.
        Year:  explicit > vehicle description > VIN > estimate text.
        """
        from_estimate = self.parser.extract_vehicle_info(estimate_text)
        vin_decode = self.vin_decoder.decode(vin or from_estimate.vin)

        brand_candidates = [
            self.tables.normalize_brand(brand),
            self.tables.find_brand(vehicle_description),
            vin_decode.brand if vin_decode else None,
            from_estimate.make,
        ]
        year_candidates = [
            _coerce_year(year),
            _year_in(vehicle_description),
            vin_decode.year if vin_decode else None,
            from_estimate.year,
        ]
        resolved_brand = next((b for b in brand_candidates if b), None)
        resolved_year = next((y for y in year_candidates if y), None)
        if resolved_brand is None:
            logger.warning("Could not determine vehicle brand; using default calibration methods")

        return VehicleIdentity(
            vin=vin_decode.vin if vin_decode else None,
            brand=resolved_brand,
            year=resolved_year,
            description=vehicle_description,
            vin_decode=vin_decode,
        )

    def run(
        self,
        estimate_text,
        vin: Optional[str] = None,
        brand: Optional[str] = None,
        year=None,
        secondary_report_text: Optional[str] = None,
        vehicle_description: Optional[str] = None,
    ) -> ScrubResult:
        started = time.perf_counter()

        parsed = self.parser.parse(estimate_text)
        vehicle = self.resolve_vehicle(estimate_text, vin, brand, year, vehicle_description)
        features = self.parser.extract_mentioned_features(estimate_text)
        profile, expectation = self.profiler.build(
            vin_decode=vehicle.vin_decode,
            brand=vehicle.brand,
            year=vehicle.year,
            secondary_text=secondary_report_text,
            estimate_features=features,
        )

        candidates = self.trigger_resolver.resolve(
            parsed.operations,
            evidence_tags=profile.all_tags(),
            brand=vehicle.brand,
            profile=profile,
        )
        triggered = {c.system for c in candidates}
        not_triggered = []
        for system in CalibrationSystem:
            if system in triggered:
                continue
            check = self.profiler.check_system(profile, system)
            if check.has_system is not False:
                not_triggered.append(UntriggeredSystem(
                    system=system,
                    vehicle_has_system=check.has_system,
                    equipment_confidence=check.confidence,
                    equipment_source=check.source,
                ))

        scrub_set = [c for c in candidates if c.vehicle_has_system is True]
        repair_scope = any(self.trigger_resolver.is_calibration_relevant(op) for op in parsed.operations)
        secondary_items = self.reconciler.parse_secondary(secondary_report_text)
        report = self.reconciler.reconcile(scrub_set, secondary_items, repair_scope=repair_scope)

        required = self.reconciler.final_calibration_list(report)
        verification = self.reconciler.verification_items(report, candidates)

        summary = ScrubSummary(
            repair_operations_found=len(parsed.operations),
            calibrations_triggered=len(candidates),
            calibrations_verified=len(required),
            calibrations_needing_verification=len(verification),
            reconciliation_status=report.status,
            needs_attention=report.status != ReconciliationStatus.OK or bool(verification),
        )

        result = ScrubResult(
            scrub_version=SCRUB_VERSION,
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            vehicle=vehicle,
            equipment=profile,
            brand_year=expectation,
            repair_operations=parsed.operations,
            repair_summary=self.parser.repair_summary(parsed),
            triggered_calibrations=candidates,
            calibrations_not_triggered=not_triggered,
            reconciliation=report,
            calibrations_required=required,
            calibrations_needing_verification=verification,
            oem_reference=self.oem_provider.brand_reference(vehicle.brand),
            summary=summary,
        )
        logger.info(
            f"Scrub complete for {vehicle.brand or 'unknown brand'} {vehicle.year or ''}: "
            f"{summary.calibrations_verified} billable, {summary.calibrations_needing_verification} to verify, "
            f"status {report.status.value}"
        )
        return result


def error_result(message: str, processing_time_ms: float = 0.0) -> ScrubResult:
    """Well-typed result for a scrub that could not complete."""
    return ScrubResult(
        scrub_version=SCRUB_VERSION,
        processing_time_ms=processing_time_ms,
        reconciliation=ReconciliationReport(status=ReconciliationStatus.ERROR),
        summary=ScrubSummary(reconciliation_status=ReconciliationStatus.ERROR, needs_attention=True),
        error=message,
    )


def scrub_estimate(
    estimate_text,
    vin: Optional[str] = None,
    brand: Optional[str] = None,
    year=None,
    secondary_report_text: Optional[str] = None,
    vehicle_description: Optional[str] = None,
    *,
    tables: ReferenceTables | None = None,
    settings: EngineSettings | None = None,
    oem_provider: OEMReferenceProvider | None = None,
) -> ScrubResult:
    """
    Determine the calibrations an estimate requires and reconcile them.

    Never raises: unexpected failures come back as a result with `error`
    set and reconciliation status ERROR.
    """
    started = time.perf_counter()
    try:
        engine = ScrubEngine(tables=tables, settings=settings, oem_provider=oem_provider)
        return engine.run(
            estimate_text,
            vin=vin,
            brand=brand,
            year=year,
            secondary_report_text=secondary_report_text,
            vehicle_description=vehicle_description,
        )
    except Exception as e:
        logger.error(f"Scrub failed: {e}")
        return error_result(str(e), round((time.perf_counter() - started) * 1000, 2))


def scrub(request: ScrubRequest, **kwargs) -> ScrubResult:
    return scrub_estimate(
        request.estimate_text,
        vin=request.vin,
        brand=request.brand,
        year=request.year,
        secondary_report_text=request.secondary_report_text,
        vehicle_description=request.vehicle_description,
        **kwargs,
    )


def quick_scan(estimate_text, tables: ReferenceTables | None = None) -> dict:
    """Cheap check: does the estimate touch anything that can need calibration?"""
    tables = tables or get_reference_tables()
    parsed = EstimateParser(tables).parse(estimate_text)
    relevant = [op for op in parsed.operations if tables.triggers_for(op.component.category)]
    return {
        "total_repair_lines": len(parsed.operations),
        "has_adas_relevant_repairs": bool(relevant),
        "should_perform_full_scrub": bool(relevant),
        "summary": [
            {
                "category": op.component.category.value,
                "operation": op.operation.value,
                "description": op.component.description[:50],
            }
            for op in parsed.operations
        ],
    }


def _batch_row(request: ScrubRequest, result: ScrubResult) -> dict:
    return {
        "job_id": request.job_id,
        "brand": result.vehicle.brand,
        "year": result.vehicle.year,
        "vin": result.vehicle.vin,
        "status": result.summary.reconciliation_status.value,
        "repair_operations": result.summary.repair_operations_found,
        "calibrations_triggered": result.summary.calibrations_triggered,
        "calibrations_required": "; ".join(c.name for c in result.calibrations_required),
        "needs_verification": "; ".join(v.name for v in result.calibrations_needing_verification),
        "needs_attention": result.summary.needs_attention,
        "error": result.error,
    }


def run_batch(
    requests: list[ScrubRequest],
    output_dir: Path | None = None,
    tables: ReferenceTables | None = None,
    settings: EngineSettings | None = None,
) -> list[ScrubResult]:
    """
    Scrub many estimates and export a one-row-per-job summary CSV.

    Args:
        requests: jobs to scrub, independent of each other
        output_dir: where scrub_summary.csv goes (defaults to OUTPUT_DIR)

    Returns:
        One ScrubResult per request, in request order
    """
    logger.info(f"Starting batch scrub of {len(requests)} estimates")

    results = [scrub(req, tables=tables, settings=settings) for req in requests]

    if output_dir is None:
        ensure_output_dirs()
        output_dir = OUTPUT_DIR
    else:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

    if results:
        df = pd.DataFrame([_batch_row(req, res) for req, res in zip(requests, results)])
        out_path = output_dir / BATCH_SUMMARY_FILE
        df.to_csv(out_path, index=False)
        logger.info(f"Exported {len(results)} scrub summaries to {out_path}")

    failed = sum(1 for r in results if not r.ok)
    if failed:
        logger.warning(f"{failed} of {len(results)} scrubs returned errors")
    return results
