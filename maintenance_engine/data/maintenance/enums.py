"""
Closed value sets for maintenance records.

Columns store the string value; every member subclasses str so stored
strings compare equal to members.
"""

import enum


class TriggerType(str, enum.Enum):
    TIME = 'time'
    METER = 'meter'
    CONDITION = 'condition'


class FrequencyType(str, enum.Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    USAGE_BASED = 'usage_based'
    CONDITION_BASED = 'condition_based'


class WorkOrderStatus(str, enum.Enum):
    DRAFTED = 'drafted'
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    WAITING_PARTS = 'waiting_parts'
    WAITING_WINDOW = 'waiting_window'
    WAITING_CLIENT = 'waiting_client'
    COMPLETED = 'completed'
    APPROVED = 'approved'
    CLOSED = 'closed'
    REJECTED = 'rejected'
    CANCELED = 'canceled'


class WorkOrderOrigin(str, enum.Enum):
    PM = 'pm'
    INCIDENT = 'incident'
    MANUAL = 'manual'
    CONDITION = 'condition'


class ApprovalStatus(str, enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class TaskStatus(str, enum.Enum):
    PENDING = 'pending'
    DOING = 'doing'
    BLOCKED = 'blocked'
    DONE = 'done'
    VERIFIED = 'verified'


PLAN_PRIORITIES = ('low', 'medium', 'high', 'critical')
WORK_ORDER_PRIORITIES = ('low', 'medium', 'high', 'critical', 'emergency')
