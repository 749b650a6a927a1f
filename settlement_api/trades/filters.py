import django_filters

from .constants import TransactionStatus
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=TransactionStatus.CHOICES)
    cryptocurrency = django_filters.CharFilter(lookup_expr='iexact')
    role = django_filters.ChoiceFilter(
        choices=(('buyer', 'Buyer'), ('seller', 'Seller')),
        method='filter_role',
    )
    created_after = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Transaction
        fields = ['status', 'cryptocurrency', 'role', 'created_after', 'created_before']

    def filter_role(self, queryset, name, value):
        user = self.request.user
        if value == 'buyer':
            return queryset.filter(buyer=user)
        return queryset.filter(seller=user)
