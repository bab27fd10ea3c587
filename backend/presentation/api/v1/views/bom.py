"""
BOM Views.

API views for analysing Bill of Materials snapshots: tree building,
revision comparison and integrity audits. Nothing is persisted; every
request carries the rows it is about.
"""

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from application.services.bom_analysis import BOMAnalysisService, group_findings, ordered_changes
from domain.bom.audit import summarize
from domain.shared.value_objects import ChangeKind
from ..serializers.bom import (
    AuditRequestSerializer,
    BOMTreeSerializer,
    ChangeRecordSerializer,
    DiffRequestSerializer,
    FindingSerializer,
    TreeRequestSerializer,
    WorkbookAuditRequestSerializer,
)

logger = logging.getLogger(__name__)


def _audit_payload(findings):
    summary = summarize(findings)
    return {
        'valid': summary['errors'] == 0,
        'summary': summary,
        'findings': FindingSerializer(findings, many=True).data,
        'by_check': {
            check_id: FindingSerializer(items, many=True).data
            for check_id, items in group_findings(findings).items()
        },
    }


class BOMAnalysisViewSet(viewsets.ViewSet):
    """
    ViewSet for BOM snapshot analysis.

    Endpoints:
    - POST /bom/tree/ - build the location-keyed tree (optionally one sub-assembly)
    - POST /bom/diff/ - compare two revisions
    - POST /bom/audit/ - run integrity checks over a row snapshot
    - POST /bom/audit-workbook/ - run integrity checks over an uploaded .xlsx
    """

    def get_service(self):
        return BOMAnalysisService()

    @action(detail=False, methods=['post'])
    def tree(self, request):
        """Build a BOM tree from rows."""
        serializer = TreeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        tree = self.get_service().build_tree(
            data['rows'],
            data['column_map'],
            start_index=data['start_index'],
            anchor_part_id=data.get('anchor_part_id') or None,
            occurrence=data['occurrence'],
        )
        return Response(BOMTreeSerializer(tree).data)

    @action(detail=False, methods=['post'])
    def diff(self, request):
        """Compare old and new BOM revisions."""
        serializer = DiffRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().diff(
            data['old']['rows'],
            data['new']['rows'],
            data['new']['column_map'],
            old_column_map=data['old']['column_map'],
            anchor_part_id=data.get('anchor_part_id') or None,
        )
        return Response({
            'changes': ChangeRecordSerializer(ordered_changes(result), many=True).data,
            'direct_keys': sorted(result.direct_keys),
            'impacted_keys': sorted(result.impacted_keys),
            'summary': {
                kind.value.lower(): len(result.by_kind(kind))
                for kind in ChangeKind
            },
        })

    @action(detail=False, methods=['post'])
    def audit(self, request):
        """Audit a BOM row snapshot."""
        serializer = AuditRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        findings = self.get_service().audit(
            data['rows'],
            data['column_map'],
            data['parts'],
            data['sourcing'],
            data.get('non_production_states'),
            start_index=data['start_index'],
        )
        return Response(_audit_payload(findings))

    @action(
        detail=False,
        methods=['post'],
        url_path='audit-workbook',
        parser_classes=[MultiPartParser, FormParser, JSONParser],
    )
    def audit_workbook(self, request):
        """Audit an uploaded BOM worksheet."""
        serializer = WorkbookAuditRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        upload = data['file']
        snapshot, findings = self.get_service().audit_workbook(
            upload,
            data.get('parts') or {},
            data.get('sourcing') or {},
            sheet_name=data.get('sheet_name') or None,
            header_row=data['header_row'],
        )
        logger.info(f"Audited uploaded workbook {upload.name}: {len(findings)} findings")

        payload = _audit_payload(findings)
        payload.update({
            'sheet_name': snapshot.sheet_name,
            'rows_count': len(snapshot.rows),
            'column_map': snapshot.column_map,
        })
        return Response(payload, status=status.HTTP_200_OK)
