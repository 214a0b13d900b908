import django_filters

from modules.deliveries.models import DeliveryOrder


class DeliveryOrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    buyer = django_filters.NumberFilter(field_name="buyer_id")
    order = django_filters.NumberFilter(field_name="purchase_order_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = DeliveryOrder
        fields = ["status", "buyer", "order", "start_date", "end_date"]
