"""
PlantGate Domain Models
=======================

Table gateways over the request-scoped database.
"""

from plantgate.models.notification import NotificationReadStatus
from plantgate.models.notification_center import NotificationCenter
from plantgate.models.qa_inspection import QaInspection, QaInspectionItem, QaInspectionSerial
from plantgate.models.system_log_history import SystemLogHistory
from plantgate.models.user_login import UserLogin

ALL_MODELS = (
    UserLogin,
    SystemLogHistory,
    NotificationCenter,
    NotificationReadStatus,
    QaInspection,
    QaInspectionItem,
    QaInspectionSerial,
)

__all__ = [
    "ALL_MODELS",
    "NotificationCenter",
    "NotificationReadStatus",
    "QaInspection",
    "QaInspectionItem",
    "QaInspectionSerial",
    "SystemLogHistory",
    "UserLogin",
]
