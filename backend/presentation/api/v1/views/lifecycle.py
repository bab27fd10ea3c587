"""
Lifecycle Views.

Checks and commits part lifecycle transitions against the configured
transition table.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services.lifecycle import LifecycleService
from ..serializers.lifecycle import (
    TransitionCommitSerializer,
    TransitionRecordSerializer,
    TransitionResultSerializer,
    TransitionValidateSerializer,
)


class LifecycleViewSet(viewsets.ViewSet):
    """
    ViewSet for lifecycle transitions.

    Endpoints:
    - GET /lifecycle/states/ - transition table
    - POST /lifecycle/validate/ - check a transition
    - POST /lifecycle/commit/ - commit a transition (deviations need authorization_reference)
    """

    def get_service(self):
        return LifecycleService()

    @action(detail=False, methods=['get'])
    def states(self, request):
        governor = self.get_service().governor
        return Response({
            'states': governor.states,
            'terminal_states': governor.terminal_states,
            'transitions': governor.table,
        })

    @action(detail=False, methods=['post'])
    def validate(self, request):
        serializer = TransitionValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().validate(data.get('current_state'), data['next_state'])
        return Response(TransitionResultSerializer(result).data)

    @action(detail=False, methods=['post'])
    def commit(self, request):
        serializer = TransitionCommitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        outcome = self.get_service().commit(
            data['part_id'],
            data.get('current_state'),
            data['next_state'],
            data['actor'],
            authorization_reference=data.get('authorization_reference'),
        )
        payload = {
            'committed': outcome.committed,
            'result': TransitionResultSerializer(outcome.result).data,
            'record': TransitionRecordSerializer(outcome.record).data if outcome.record else None,
        }

        if outcome.committed or outcome.result.is_noop:
            return Response(payload)
        return Response(payload, status=status.HTTP_409_CONFLICT)
