from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with back-office role"""
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('accountant', 'Accountant'),
        ('manager', 'Manager'),
        ('customer', 'Customer'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='customer')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.email or self.username

    class Meta:
        db_table = 'users'


class UserPreference(models.Model):
    """Per-user UI preferences (page sizes, active tabs, filters)"""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='preferences')
    key = models.CharField(max_length=100)
    value = models.JSONField(default=None, null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user_id}:{self.key}"

    class Meta:
        db_table = 'user_preferences'
        constraints = [
            models.UniqueConstraint(fields=['user', 'key'], name='uniq_user_preference_key'),
        ]


class AuditLog(models.Model):
    """Audit log for critical back-office operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('clear_all', 'Clear All'),
        ('arrival_create', 'Arrival Created'),
        ('arrival_update', 'Arrival Updated'),
        ('arrival_delete', 'Arrival Deleted'),
        ('debt_payment', 'Debt Payment'),
        ('debt_delete', 'Debt Deleted'),
        ('receipt_create', 'Receipt Created'),
        ('receipt_cancel', 'Receipt Cancelled'),
        ('receipt_debt_paid', 'Receipt Debt Paid'),
        ('incassation', 'Incassation'),
        ('client_debt_create', 'Client Debt Created'),
        ('client_debt_payment', 'Client Debt Payment'),
        ('order_status', 'Order Status Changed'),
        ('refund', 'Refund'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., supplier name, receipt number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., receipt number, debt id)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_9c2e41_idx'),
            models.Index(fields=['action'], name='audit_logs_action_5d7a13_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_e81b2c_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__3fa6d8_idx'),
        ]


class EventLog(models.Model):
    """Ordered feed of back-office notifications (arrival deleted, debt paid, ...)"""
    event_type = models.CharField(max_length=50)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"#{self.id} {self.event_type}"

    class Meta:
        db_table = 'event_log'
        ordering = ['id']
        indexes = [
            models.Index(fields=['event_type'], name='event_log_event_t_4b1f0d_idx'),
        ]
