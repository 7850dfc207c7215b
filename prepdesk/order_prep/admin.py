"""
Django admin configuration for Order Preparation.
"""

from django.contrib import admin
from .models import Assignment, AssignmentHistory, PriorityMark, ProductLocation, AuditLog


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'worker_name', 'state', 'is_high_priority', 'remote_status_synced', 'assigned_at']
    list_filter = ['state', 'is_high_priority', 'remote_status_synced']
    search_fields = ['order_id', 'order_number', 'worker__username', 'worker_name']
    readonly_fields = ['id', 'assigned_at', 'started_at', 'waiting_at', 'last_status_update_at', 'snapshot_refreshed_at']


@admin.register(AssignmentHistory)
class AssignmentHistoryAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'worker_name', 'final_state', 'duration_seconds', 'claim_locked', 'archived_at']
    list_filter = ['final_state', 'claim_locked', 'remote_status_synced']
    search_fields = ['order_id', 'order_number', 'worker_name']
    readonly_fields = [
        'id', 'order_id', 'order_number', 'worker', 'worker_name', 'final_state',
        'assigned_at', 'started_at', 'waiting_at', 'completed_at', 'cancelled_at',
        'duration_seconds', 'order_snapshot', 'archived_at'
    ]


@admin.register(PriorityMark)
class PriorityMarkAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'reason', 'created_by', 'created_at']
    search_fields = ['order_id', 'order_number', 'customer_name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(ProductLocation)
class ProductLocationAdmin(admin.ModelAdmin):
    list_display = ['sku', 'location', 'product_id', 'updated_by', 'updated_at']
    search_fields = ['sku', 'location', 'product_id']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'order_id', 'action', 'user', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'order_id', 'notes']
    readonly_fields = ['id', 'timestamp']
