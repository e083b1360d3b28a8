from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from .activity.mysql_activity_log_repository import MySQLActivityLogRepository
from .activity.service import ActivityLogService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceRecorder
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .gatepass.mysql_gatepass_repository import MySQLGatePassRepository
from .gatepass.service import GatePassService
from .gatepass.validator import PassRequestValidator
from .guardians.mysql_guardian_link_repository import MySQLGuardianLinkRepository
from .guardians.service import GuardianLinkRegistry
from .notifications.dispatcher import BestEffortNotifier
from .notifications.mysql_notification_dispatcher import MySQLNotificationDispatcher
from .system_config.mysql_system_config_repository import MySQLSystemConfigRepository
from .system_config.service import SystemConfigService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository

    system_config_service: SystemConfigService
    guardian_registry: GuardianLinkRegistry
    gatepass_service: GatePassService
    attendance_recorder: AttendanceRecorder
    activity_log_service: ActivityLogService
    dashboard_service: DashboardService

    notify_executor: Optional[Executor] = None


def build_container(*, db_config: dict, notify_workers: int = 0) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    users_repo = MySQLUserRepository(conn)
    links_repo = MySQLGuardianLinkRepository(conn)
    passes_repo = MySQLGatePassRepository(conn)
    events_repo = MySQLActivityLogRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    config_repo = MySQLSystemConfigRepository(conn)

    executor = ThreadPoolExecutor(max_workers=notify_workers, thread_name_prefix="notify") if notify_workers > 0 else None
    notifier = BestEffortNotifier(MySQLNotificationDispatcher(conn), executor=executor)

    system_config_service = SystemConfigService(config_repo)
    guardian_registry = GuardianLinkRegistry(links_repo, users_repo)
    gatepass_service = GatePassService(
        passes_repo,
        users_repo,
        guardian_registry,
        system_config_service,
        notifier,
        validator=PassRequestValidator(passes_repo),
    )
    attendance_recorder = AttendanceRecorder(attendance_repo, users_repo, guardian_registry, system_config_service)
    activity_log_service = ActivityLogService(events_repo, users_repo)
    dashboard_service = DashboardService(users_repo, passes_repo, attendance_repo, system_config_service)

    return Container(
        users_repo=users_repo,
        system_config_service=system_config_service,
        guardian_registry=guardian_registry,
        gatepass_service=gatepass_service,
        attendance_recorder=attendance_recorder,
        activity_log_service=activity_log_service,
        dashboard_service=dashboard_service,
        notify_executor=executor,
    )
