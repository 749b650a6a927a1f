from decimal import Decimal

from auditlog.diff import model_instance_diff
from auditlog.models import LogEntry
from auditlog.registry import auditlog
from django.apps import apps
from django.contrib.auth import get_user_model
from django.db import transaction as db_transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from trades.constants import TransactionStatus
from .exceptions import NotFoundError, PreconditionFailedError
from .repository import (
    TransactionRepository, Create, Update, resolve_refs,
    TRANSACTION, ESCROW, PAYMENT, RATING, REPUTATION, NOTIFICATION,
)

MODEL_LABELS = {
    TRANSACTION: 'trades.Transaction',
    ESCROW: 'escrow.Escrow',
    PAYMENT: 'payments.Payment',
    RATING: 'trades.Rating',
    REPUTATION: 'reputation.UserReputation',
    NOTIFICATION: 'trades.Notification',
}


class DjangoTransactionRepository(TransactionRepository):
    """
    TransactionRepository over the Django ORM.

    Conditional writes are a single UPDATE ... WHERE status IN (...), so two
    processes racing on the same row cannot both succeed. Batches run inside
    transaction.atomic(). Updates of audited models are logged with
    django-auditlog by hand, since queryset.update() sends no signals.
    """

    def _model(self, entity):
        try:
            return apps.get_model(MODEL_LABELS[entity])
        except KeyError:
            raise ValueError(f"Unknown entity: {entity}")

    def get(self, entity, pk):
        model = self._model(entity)
        try:
            return model.objects.get(pk=pk)
        except model.DoesNotExist:
            raise NotFoundError(entity, pk)

    def find(self, entity, **lookup):
        return self._model(entity).objects.filter(**lookup).order_by('pk').first()

    def update(self, entity, pk, fields, expected_status=()):
        with db_transaction.atomic():
            return self._apply_update(Update(entity, pk, fields, tuple(expected_status)))

    def atomic_batch(self, operations):
        results = []
        with db_transaction.atomic():
            for op in operations:
                if isinstance(op, Create):
                    model = self._model(op.entity)
                    results.append(model.objects.create(**resolve_refs(op.fields, results)))
                else:
                    results.append(self._apply_update(op))
        return results

    def _apply_update(self, op):
        model = self._model(op.entity)
        queryset = model.objects.filter(pk=op.pk)
        if op.expected_status:
            queryset = queryset.filter(status__in=op.expected_status)

        before = None
        if op.fields:
            if auditlog.contains(model):
                before = queryset.select_for_update().first()
            fields = dict(op.fields)
            # queryset.update() bypasses auto_now
            if any(f.name == 'updated_at' for f in model._meta.concrete_fields):
                fields.setdefault('updated_at', timezone.now())
            matched = queryset.update(**fields)
        else:
            matched = len(queryset.select_for_update().values_list('pk', flat=True))

        if not matched:
            current = model.objects.filter(pk=op.pk).first()
            if current is None:
                raise NotFoundError(op.entity, op.pk)
            raise PreconditionFailedError(op.entity, op.pk, op.expected_status, getattr(current, 'status', None))
        instance = model.objects.get(pk=op.pk)
        if before is not None:
            self._log_update(before, instance, op.fields)
        return instance

    def _log_update(self, before, after, fields):
        changes = model_instance_diff(before, after, fields_to_check=list(fields))
        if changes:
            LogEntry.objects.log_create(after, action=LogEntry.Action.UPDATE, changes=changes)

    def _participant_q(self, user_id, role=None):
        if role == 'buyer':
            return Q(buyer_id=user_id)
        if role == 'seller':
            return Q(seller_id=user_id)
        return Q(buyer_id=user_id) | Q(seller_id=user_id)

    def _completed_for(self, user_id):
        return self._model(TRANSACTION).objects.filter(
            self._participant_q(user_id),
            status=TransactionStatus.COMPLETED,
        )

    def list_rating_scores(self, user_id):
        return list(
            self._model(RATING).objects.filter(rated_user_id=user_id).values_list('score', flat=True)
        )

    def count_transactions(self, user_id, statuses=None, role=None, exclude_statuses=None):
        queryset = self._model(TRANSACTION).objects.filter(self._participant_q(user_id, role))
        if statuses is not None:
            queryset = queryset.filter(status__in=statuses)
        if exclude_statuses:
            queryset = queryset.exclude(status__in=exclude_statuses)
        return queryset.count()

    def sum_amount_by_crypto_for_user(self, user_id):
        rows = (
            self._completed_for(user_id)
            .values('cryptocurrency')
            .annotate(asset_volume=Sum('asset_amount'), fiat_volume=Sum('fiat_amount'), count=Count('id'))
            .order_by('cryptocurrency')
        )
        return [
            {
                'cryptocurrency': row['cryptocurrency'],
                'asset_volume': row['asset_volume'] or Decimal('0'),
                'fiat_volume': row['fiat_volume'] or Decimal('0'),
                'count': row['count'],
            }
            for row in rows
        ]

    def sum_fiat_volume_for_user(self, user_id):
        total = self._completed_for(user_id).aggregate(total=Sum('fiat_amount'))['total']
        return total or Decimal('0')

    def upsert_reputation(self, user_id, fields):
        reputation, _ = self._model(REPUTATION).objects.update_or_create(user_id=user_id, defaults=fields)
        return reputation

    def list_top_reputations(self, limit):
        return list(
            self._model(REPUTATION).objects
            .filter(completed_transactions__gt=0)
            .order_by('-average_score', '-completed_transactions', 'user_id')[:limit]
        )

    def get_display_name(self, user_id):
        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            return None
        if hasattr(user, 'get_display_name'):
            return user.get_display_name()
        return str(user)
