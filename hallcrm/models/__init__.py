"""Expose ORM models."""
from .app_setting import AppSetting
from .employee import Employee, EmployeeRole
from .lead import Lead, LeadStage
from .message import Message, MessageDirection
from .notification import Notification, NotificationPriority, NotificationType

__all__ = [
    "AppSetting",
    "Employee",
    "EmployeeRole",
    "Lead",
    "LeadStage",
    "Message",
    "MessageDirection",
    "Notification",
    "NotificationPriority",
    "NotificationType",
]
