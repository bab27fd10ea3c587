"""
BOM Serializers.

Request serializers for row snapshots and response serializers for
trees, change sets and audit findings.
"""

from rest_framework import serializers


# =============================================================================
# REQUESTS
# =============================================================================

class RowSnapshotSerializer(serializers.Serializer):
    """Rows plus the column map that locates each attribute in them."""

    rows = serializers.ListField(child=serializers.JSONField(), allow_empty=True)
    column_map = serializers.DictField(child=serializers.JSONField())

    def validate_rows(self, value):
        for index, row in enumerate(value):
            if row is not None and not isinstance(row, (list, dict)):
                raise serializers.ValidationError(
                    f'Row {index} must be a list of cells or an object'
                )
        return value


class TreeRequestSerializer(RowSnapshotSerializer):
    start_index = serializers.IntegerField(min_value=0, default=0)
    anchor_part_id = serializers.CharField(required=False, allow_blank=True)
    occurrence = serializers.IntegerField(min_value=0, default=0)


class DiffRequestSerializer(serializers.Serializer):
    old = RowSnapshotSerializer()
    new = RowSnapshotSerializer()
    anchor_part_id = serializers.CharField(required=False, allow_blank=True)


class CatalogFieldsMixin(serializers.Serializer):
    """Part and sourcing dictionaries sent with an audit request."""

    parts = serializers.DictField(child=serializers.JSONField(), default=dict)
    sourcing = serializers.DictField(
        child=serializers.ListField(child=serializers.JSONField()),
        default=dict
    )
    non_production_states = serializers.ListField(
        child=serializers.CharField(),
        required=False
    )


class AuditRequestSerializer(CatalogFieldsMixin, RowSnapshotSerializer):
    start_index = serializers.IntegerField(min_value=0, default=0)


class WorkbookAuditRequestSerializer(serializers.Serializer):
    """Multipart upload: parts and sourcing arrive as JSON strings."""

    file = serializers.FileField()
    parts = serializers.JSONField(binary=True, required=False)
    sourcing = serializers.JSONField(binary=True, required=False)
    sheet_name = serializers.CharField(required=False, allow_blank=True)
    header_row = serializers.IntegerField(min_value=1, default=1)

    def validate_file(self, value):
        if not value.name.lower().endswith('.xlsx'):
            raise serializers.ValidationError('Only .xlsx workbooks are supported')
        return value

    def validate_parts(self, value):
        if value is not None and not isinstance(value, dict):
            raise serializers.ValidationError('parts must be an object keyed by part id')
        return value

    def validate_sourcing(self, value):
        if value is not None and not isinstance(value, dict):
            raise serializers.ValidationError('sourcing must be an object keyed by part id')
        return value


# =============================================================================
# RESPONSES
# =============================================================================

class SourcingEntrySerializer(serializers.Serializer):
    manufacturer = serializers.CharField()
    manufacturer_part_number = serializers.CharField()
    row_index = serializers.IntegerField(allow_null=True)


class AssemblyNodeSerializer(serializers.Serializer):
    """Serializer for tree nodes in flat (location-keyed) format."""

    location_key = serializers.CharField()
    parent_key = serializers.CharField()
    depth = serializers.IntegerField()
    part_id = serializers.CharField()
    quantity = serializers.CharField()
    description = serializers.CharField()
    revision = serializers.CharField()
    lifecycle = serializers.CharField()
    status = serializers.CharField()
    row_index = serializers.IntegerField(allow_null=True)
    sourcing = SourcingEntrySerializer(many=True)


class BOMTreeSerializer(serializers.Serializer):
    separator = serializers.CharField()
    base_depth = serializers.IntegerField()
    start_index = serializers.IntegerField()
    nodes = serializers.SerializerMethodField()
    duplicate_keys = serializers.SerializerMethodField()

    def get_nodes(self, obj):
        return AssemblyNodeSerializer(list(obj.values()), many=True).data

    def get_duplicate_keys(self, obj):
        return [{'location_key': key, 'row_index': row} for key, row in obj.duplicate_keys]


class ChangeRecordSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    kind = serializers.SerializerMethodField()
    location_key = serializers.CharField()
    parent_key = serializers.CharField()
    part_id = serializers.CharField()
    field = serializers.CharField(source='detail.field', allow_null=True)
    before = serializers.JSONField(source='detail.before')
    after = serializers.JSONField(source='detail.after')
    message = serializers.CharField(source='describe')

    def get_kind(self, obj):
        return obj.kind.value


class FindingSerializer(serializers.Serializer):
    check_id = serializers.CharField()
    severity = serializers.SerializerMethodField()
    location = serializers.CharField(allow_null=True)
    part_id = serializers.CharField(allow_null=True)
    message = serializers.CharField()
    row_index = serializers.IntegerField(allow_null=True)
    locations = serializers.ListField(child=serializers.CharField())

    def get_severity(self, obj):
        return obj.severity.value
