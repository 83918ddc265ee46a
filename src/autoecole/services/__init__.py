"""Domain services: one thin mapping per UI area onto the REST API."""

from __future__ import annotations

from dataclasses import dataclass

from autoecole.api.client import ApiClient
from autoecole.api.credentials import CredentialsStore
from autoecole.services.admin_service import AdminService
from autoecole.services.article_service import ArticleService
from autoecole.services.auth_service import AuthService
from autoecole.services.course_service import CourseService
from autoecole.services.dashboard_service import DashboardService
from autoecole.services.exam_service import ExamService
from autoecole.services.payment_service import PaymentService
from autoecole.services.question_service import QuestionService
from autoecole.services.user_service import UserService
from autoecole.services.video_service import VideoService


@dataclass
class Services:
    """All services sharing one API client."""

    client: ApiClient
    admin: AdminService
    articles: ArticleService
    auth: AuthService
    courses: CourseService
    dashboard: DashboardService
    exams: ExamService
    payments: PaymentService
    questions: QuestionService
    users: UserService
    videos: VideoService


def create_services(client: ApiClient, store: CredentialsStore) -> Services:
    """Wire every service onto the given client."""
    return Services(
        client=client,
        admin=AdminService(client),
        articles=ArticleService(client),
        auth=AuthService(client, store),
        courses=CourseService(client),
        dashboard=DashboardService(client),
        exams=ExamService(client),
        payments=PaymentService(client),
        questions=QuestionService(client),
        users=UserService(client),
        videos=VideoService(client),
    )


__all__ = [
    "AdminService",
    "ArticleService",
    "AuthService",
    "CourseService",
    "DashboardService",
    "ExamService",
    "PaymentService",
    "QuestionService",
    "Services",
    "UserService",
    "VideoService",
    "create_services",
]
