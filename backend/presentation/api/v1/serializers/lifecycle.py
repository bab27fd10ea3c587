"""
Lifecycle Serializers.
"""

from rest_framework import serializers


class TransitionValidateSerializer(serializers.Serializer):
    current_state = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    next_state = serializers.CharField()


class TransitionCommitSerializer(TransitionValidateSerializer):
    part_id = serializers.CharField()
    actor = serializers.CharField()
    authorization_reference = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True
    )


class TransitionResultSerializer(serializers.Serializer):
    valid = serializers.BooleanField()
    is_deviation = serializers.BooleanField()
    is_noop = serializers.BooleanField()
    kind = serializers.SerializerMethodField()
    message = serializers.CharField()
    allowed = serializers.ListField(child=serializers.CharField())

    def get_kind(self, obj):
        return obj.kind.value if obj.kind else None


class TransitionRecordSerializer(serializers.Serializer):
    part_id = serializers.CharField()
    from_state = serializers.CharField(allow_null=True)
    to_state = serializers.CharField()
    kind = serializers.SerializerMethodField()
    actor = serializers.CharField()
    timestamp = serializers.DateTimeField()
    authorization_reference = serializers.CharField(allow_null=True)

    def get_kind(self, obj):
        return obj.kind.value
