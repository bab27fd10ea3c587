"""
BOM Tasks.

Celery tasks for BOM-related operations. Each task runs one complete
analysis over the snapshot it is given and returns a JSON-ready dict.
"""

from celery import shared_task
import logging

from domain.bom.audit import Finding, summarize
from domain.shared.exceptions import DomainException

logger = logging.getLogger(__name__)


def finding_to_dict(finding: Finding) -> dict:
    return {
        'check_id': finding.check_id,
        'severity': finding.severity.value,
        'location': finding.location,
        'part_id': finding.part_id,
        'message': finding.message,
        'row_index': finding.row_index,
        'locations': list(finding.locations),
    }


def change_to_dict(change) -> dict:
    return {
        'id': change.id,
        'kind': change.kind.value,
        'location_key': change.location_key,
        'parent_key': change.parent_key,
        'part_id': change.part_id,
        'field': change.detail.field,
        'before': change.detail.before,
        'after': change.detail.after,
        'message': change.describe(),
    }


@shared_task
def audit_bom_snapshot(snapshot: dict):
    """
    Audit a BOM row snapshot.

    Snapshot keys:
    - rows, column_map (required)
    - parts, sourcing, non_production_states, start_index (optional)
    """
    from application.services.bom_analysis import BOMAnalysisService

    try:
        findings = BOMAnalysisService().audit(
            snapshot['rows'],
            snapshot['column_map'],
            snapshot.get('parts'),
            snapshot.get('sourcing'),
            snapshot.get('non_production_states'),
            start_index=snapshot.get('start_index', 0),
        )
    except DomainException as e:
        logger.error(f"BOM audit failed: {e.message}")
        return {'error': e.message, 'code': e.code, 'details': e.details}

    summary = summarize(findings)
    logger.info(f"BOM audit task: {summary['errors']} errors, {summary['warnings']} warnings")

    return {
        'valid': summary['errors'] == 0,
        'summary': summary,
        'findings': [finding_to_dict(f) for f in findings],
    }


@shared_task
def diff_bom_snapshots(old_snapshot: dict, new_snapshot: dict, anchor_part_id: str = None):
    """
    Compare two BOM row snapshots, optionally scoped to one sub-assembly.

    Each snapshot carries its own rows and column_map.
    """
    from application.services.bom_analysis import BOMAnalysisService, ordered_changes

    try:
        result = BOMAnalysisService().diff(
            old_snapshot['rows'],
            new_snapshot['rows'],
            new_snapshot['column_map'],
            old_column_map=old_snapshot.get('column_map'),
            anchor_part_id=anchor_part_id,
        )
    except DomainException as e:
        logger.error(f"BOM diff failed: {e.message}")
        return {'error': e.message, 'code': e.code, 'details': e.details}

    return {
        'changes': [change_to_dict(c) for c in ordered_changes(result)],
        'direct_keys': sorted(result.direct_keys),
        'impacted_keys': sorted(result.impacted_keys),
    }


@shared_task(bind=True, max_retries=3)
def audit_bom_workbook(self, file_path: str, parts: dict = None, sourcing: dict = None,
                       sheet_name: str = None, header_row: int = 1):
    """
    Audit a BOM worksheet stored on disk.

    Retries when the file cannot be read yet (upload still in progress).
    """
    from application.services.bom_analysis import BOMAnalysisService

    try:
        snapshot, findings = BOMAnalysisService().audit_workbook(
            file_path,
            parts,
            sourcing,
            sheet_name=sheet_name,
            header_row=header_row,
        )
    except DomainException as e:
        logger.error(f"BOM workbook audit failed for {file_path}: {e.message}")
        return {'error': e.message, 'code': e.code, 'details': e.details}
    except OSError as e:
        logger.error(f"Error reading BOM workbook {file_path}: {e}")
        raise self.retry(exc=e, countdown=60)

    summary = summarize(findings)
    logger.info(f"Audited workbook {file_path} ({snapshot.sheet_name}): {summary['total']} findings")

    return {
        'sheet_name': snapshot.sheet_name,
        'rows_count': len(snapshot.rows),
        'valid': summary['errors'] == 0,
        'summary': summary,
        'findings': [finding_to_dict(f) for f in findings],
    }
