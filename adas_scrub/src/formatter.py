"""Text renderings of a ScrubResult for sheets, previews, reports and invoices."""

from adas_scrub.src.models import ReconciliationStatus, ScrubResult
from adas_scrub.src.stages.calibration_types import display_type

RULE = "=" * 60
SECTION = "-" * 60

_STATUS_LABELS = {
    ReconciliationStatus.OK: "OK",
    ReconciliationStatus.NEEDS_REVIEW: "REVIEW",
    ReconciliationStatus.DISCREPANCY: "DISCREPANCY",
}


def format_compact_notes(result: ScrubResult) -> str:
    """Single line, for a spreadsheet cell."""
    if result.error:
        return f"Error: {result.error}"

    parts = [
        f"Repairs: {result.summary.repair_operations_found}",
        f"Calibrations: {result.summary.calibrations_verified}",
    ]
    status = _STATUS_LABELS.get(result.reconciliation.status)
    if status:
        parts.append(f"Status: {status}")

    names = [c.name for c in result.calibrations_required]
    if names:
        parts.append(f"Required: {', '.join(names[:2])}")
        if len(names) > 2:
            parts.append(f"+{len(names) - 2} more")
    return " | ".join(parts)


def format_preview_notes(result: ScrubResult) -> str:
    if result.error:
        return f"SCRUB ERROR: {result.error}"

    vehicle = result.vehicle
    marker = "[!]" if result.summary.needs_attention else "[OK]"
    lines = [
        f"{marker} {vehicle.brand or 'Unknown'} {vehicle.year or ''}".rstrip()
        + f" - {result.summary.repair_operations_found} repairs, "
        f"{result.summary.calibrations_verified} calibrations"
    ]

    if result.calibrations_required:
        lines.append("Required:")
        for cal in result.calibrations_required:
            type_text = f" ({display_type(cal.calibration_type)})" if cal.calibration_type else ""
            lines.append(f"  + {cal.name}{type_text}")
    else:
        lines.append("No billable calibrations")

    if result.calibrations_needing_verification:
        lines.append("Needs Verification:")
        for item in result.calibrations_needing_verification:
            lines.append(f"  ? {item.name}")

    counts = result.reconciliation.counts
    if result.reconciliation.status != ReconciliationStatus.OK:
        lines.append(
            f"Secondary report: {result.reconciliation.status.value} "
            f"({counts.matched} matched, {counts.discrepancies} discrepancies)"
        )
    return "\n".join(lines)


def format_full_report(result: ScrubResult) -> str:
    """Multi-section report with traceability from each calibration to its repair line."""
    if result.error:
        return f"{RULE}\nSCRUB ERROR\n{result.error}\n{RULE}"

    vehicle, equipment = result.vehicle, result.equipment
    lines = [
        RULE,
        "ADAS ESTIMATE SCRUB REPORT",
        RULE,
        f"Scrub Version: {result.scrub_version}",
        f"Timestamp: {result.scrub_timestamp.isoformat()}",
        "",
        "VEHICLE INFORMATION",
        SECTION,
        f"Brand: {vehicle.brand or 'Unknown'}",
        f"Year: {vehicle.year or 'Unknown'}",
        f"VIN: {vehicle.vin or 'Not provided'}",
    ]
    if vehicle.description:
        lines.append(f"Description: {vehicle.description}")

    lines += ["", "ADAS EQUIPMENT PROFILE", SECTION]
    for label, tags in (("Confirmed", equipment.confirmed), ("Likely", equipment.likely), ("Possible", equipment.possible)):
        if tags:
            lines.append(f"{label} Systems: {', '.join(tags)}")
    sources = [name for name, present in equipment.sources.model_dump().items() if present]
    lines.append(f"Data Sources: {', '.join(sources) or 'None'}")

    lines += ["", "REPAIR OPERATIONS ANALYZED", SECTION, f"Total Operations: {len(result.repair_operations)}"]
    for op in result.repair_operations:
        loc = [v.value for v in (op.location.side, op.location.position) if v]
        loc_text = f" [{', '.join(loc)}]" if loc else ""
        lines.append(f"  Line {op.line_number}: {op.operation.value.upper()} - {op.component.category.value}{loc_text}")
        lines.append(f'    "{op.component.description}"')
    if not result.repair_operations:
        lines.append("  No repair operations found")

    lines += ["", RULE, "CALIBRATIONS TRIGGERED", RULE]
    for cal in result.triggered_calibrations:
        lines.append(f"{cal.system.value}")
        lines.append(f"  Type: {display_type(cal.calibration_type)}")
        lines.append(f"  Triggered By: {cal.triggered_by.label}")
        lines.append(f"  Reason: {cal.reason}")
        lines.append(f"  Confidence: {cal.confidence.value}")
        if cal.vehicle_has_system is not True:
            lines.append("  Vehicle equipment not confirmed, verify before billing")
        if cal.condition:
            lines.append(f"  Condition: {cal.condition}")
    if not result.triggered_calibrations:
        lines.append("No calibrations triggered by repair operations in this estimate.")

    if result.calibrations_not_triggered:
        lines += ["", "CALIBRATIONS NOT REQUIRED", SECTION, "(Vehicle may have these systems but no repair triggers them)"]
        for item in result.calibrations_not_triggered:
            has = "Vehicle has" if item.vehicle_has_system else "Vehicle may have"
            lines.append(f"  {item.system.value}: {has} this system")

    if result.calibrations_required:
        lines += ["", "BILLABLE CALIBRATIONS", SECTION]
        for cal in result.calibrations_required:
            lines.append(f"  {cal.name} ({display_type(cal.calibration_type)}) <- {cal.triggered_by}")
            if cal.note:
                lines.append(f"    {cal.note}")

    if result.calibrations_needing_verification:
        lines += ["", "NEEDS VERIFICATION", SECTION]
        for item in result.calibrations_needing_verification:
            lines.append(f"  {item.name}")
            lines.append(f"    Source: {item.source}")
            lines.append(f"    Note: {item.reason}")

    counts = result.reconciliation.counts
    lines += [
        "",
        "SECONDARY REPORT RECONCILIATION",
        SECTION,
        f"Status: {result.reconciliation.status.value}",
        f"Matched: {counts.matched}",
        f"Scrub Only (not in secondary report): {counts.scrub_only}",
        f"Secondary Only (no repair trigger): {counts.secondary_only}",
        f"Type Conflicts: {counts.type_conflicts}",
    ]
    if result.reconciliation.notes:
        lines += ["", "Reconciliation Details:", *result.reconciliation.notes]

    if result.oem_reference:
        lines += ["", f"OEM REFERENCE ({result.oem_reference.brand})", SECTION]
        for system in result.oem_reference.systems:
            methods = [m for m, on in (("static", system.static_calibration), ("dynamic", system.dynamic_calibration)) if on]
            lines.append(f"  {system.system_type}: {' + '.join(methods) or 'n/a'}")
            if system.tools:
                lines.append(f"    Tools: {', '.join(system.tools)}")
            if system.quirks:
                lines.append(f"    Note: {system.quirks}")
            if system.dtc_blockers:
                lines.append(f"    DTC blockers: {system.dtc_blockers}")

    summary = result.summary
    lines += [
        "",
        RULE,
        "SUMMARY",
        RULE,
        f"Repair Operations Found: {summary.repair_operations_found}",
        f"Calibrations Triggered: {summary.calibrations_triggered}",
        f"Calibrations Verified: {summary.calibrations_verified}",
        f"Needs Verification: {summary.calibrations_needing_verification}",
        f"Reconciliation Status: {summary.reconciliation_status.value}",
        f"Needs Attention: {'YES' if summary.needs_attention else 'NO'}",
        RULE,
    ]
    return "\n".join(lines)


def format_invoice_lines(result: ScrubResult) -> list[dict]:
    """Billable calibrations first, then unverified items marked as such."""
    if result.error:
        return []

    items = [
        {
            "description": f"{cal.name} Calibration",
            "type": display_type(cal.calibration_type),
            "triggered_by": cal.triggered_by,
            "verified": True,
            "confidence": cal.confidence.value,
            "notes": cal.note,
        }
        for cal in result.calibrations_required
    ]
    for item in result.calibrations_needing_verification:
        items.append({
            "description": f"{item.name} Calibration",
            "type": "TBD",
            "triggered_by": None,
            "verified": False,
            "confidence": "LOW",
            "notes": item.reason,
        })
    return items
