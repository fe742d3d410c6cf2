import django_filters

from modules.florists.models import Florist


class FloristFilter(django_filters.FilterSet):
    store_status = django_filters.CharFilter(field_name="store_status", lookup_expr="iexact")
    name = django_filters.CharFilter(field_name="store_name", lookup_expr="icontains")
    delivery = django_filters.BooleanFilter(field_name="is_delivery_enabled")

    class Meta:
        model = Florist
        fields = ["store_status", "name", "delivery"]
