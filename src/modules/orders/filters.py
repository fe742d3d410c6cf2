import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    florist = django_filters.UUIDFilter(field_name="florist_id")
    delivery_type = django_filters.CharFilter(
        field_name="delivery_type", lookup_expr="iexact"
    )
    delivery_from = django_filters.DateFilter(
        field_name="delivery_date", lookup_expr="gte"
    )
    delivery_to = django_filters.DateFilter(field_name="delivery_date", lookup_expr="lte")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "florist",
            "delivery_type",
            "delivery_from",
            "delivery_to",
            "start_date",
            "end_date",
        ]
