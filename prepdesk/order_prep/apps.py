from django.apps import AppConfig


class OrderPrepConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "order_prep"
    verbose_name = "Order Preparation"
