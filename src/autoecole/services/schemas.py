"""Pydantic records mirroring the platform's JSON responses.

The server owns every schema; these models only validate what the
client reads. Unknown fields are ignored, Mongo ``_id`` surfaces as ``id``.
Server enums (roles, difficulty, statuses) stay plain strings so a new
value never fails validation.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ServerRecord(BaseModel):
    """Base for camelCase server payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _id_field(default: str = "") -> Any:
    return Field(default=default, validation_alias=AliasChoices("_id", "id"))


# =============================================================================
# ARTICLES (snake_case on the wire)
# =============================================================================


class ArticleDefinition(BaseModel):
    term: str
    definition: str
    term_length: int = 0
    definition_length: int = 0


class ArticleContent(BaseModel):
    full_text: str = ""
    length: int = 0
    word_count: int = 0
    paragraphs: list[str] = Field(default_factory=list)
    paragraph_count: int = 0
    numbered_items: list[str] = Field(default_factory=list)


class ArticleLearningMetadata(BaseModel):
    difficulty_level: str = "beginner"
    estimated_study_time_minutes: int = 0
    content_type: str = ""
    requires_visual_aids: bool = False
    suitable_for_video: bool = False


class ArticleStructure(BaseModel):
    has_structured_data: bool = False
    has_amendments: bool = False
    has_references: bool = False
    referenced_articles: list[int] = Field(default_factory=list)


class ArticleSourceMetadata(BaseModel):
    url: str = ""
    scraped_at: str = ""
    language: str = ""
    source: str = ""


class ArticleSummary(BaseModel):
    """Entry of the article catalogue."""

    article_number: int
    title: str
    description: str = ""
    page_title: str = ""
    definition_count: int = 0
    difficulty_level: str = ""
    estimated_study_time_minutes: int = 0


class Article(BaseModel):
    """A highway-code article with its full text and definitions."""

    article_number: int
    title: str
    document_name: str = ""
    page_title: str = ""
    description: str = ""
    keywords: str | None = None
    content: ArticleContent = Field(default_factory=ArticleContent)
    definitions: list[ArticleDefinition] | None = None
    definition_count: int = 0
    structure: ArticleStructure = Field(default_factory=ArticleStructure)
    educational_content: Any = None
    learning_metadata: ArticleLearningMetadata = Field(
        default_factory=ArticleLearningMetadata
    )
    metadata: ArticleSourceMetadata = Field(default_factory=ArticleSourceMetadata)

    @property
    def full_text(self) -> str:
        return self.content.full_text


class ArticleReference(ServerRecord):
    number: int
    title: str


class AssistantContext(ServerRecord):
    current_article: int | None = None
    articles_used: list[ArticleReference] = Field(default_factory=list)


class AssistantAnswer(ServerRecord):
    """Answer of the question-answering endpoint."""

    answer: str
    context: AssistantContext | None = None


# =============================================================================
# AUTH / USERS
# =============================================================================


class AuthUser(ServerRecord):
    id: str = _id_field()
    name: str = ""
    email: str = ""
    avatar: str | None = None
    role: str = "user"
    is_premium: bool = False
    premium_expiry_date: str | None = None


class AuthSession(ServerRecord):
    """Login/registration result."""

    user: AuthUser
    access_token: str
    refresh_token: str = ""


class UserProfile(ServerRecord):
    id: str = _id_field()
    name: str = ""
    email: str = ""
    phone: str | None = None
    avatar: str | None = None
    role: str = "user"
    is_premium: bool = False
    premium_expiry_date: str | None = None
    courses_completed: list[str] = Field(default_factory=list)
    tests_taken: list[str] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


class UserStats(ServerRecord):
    courses_completed: int = 0
    total_tests: int = 0
    passed_tests: int = 0
    average_score: float = 0


class ProfileOverview(ServerRecord):
    """Profile page payload: user, stats and recent attempts."""

    user: UserProfile
    stats: UserStats = Field(default_factory=UserStats)
    recent_attempts: list[dict[str, Any]] = Field(default_factory=list)


class RecentActivity(ServerRecord):
    type: str = ""
    title: str
    date: str
    score: float | None = None


class UserProgress(ServerRecord):
    total_courses_completed: int = 0
    total_tests_taken: int = 0
    total_tests_passed: int = 0
    average_score: float = 0
    recent_activity: list[RecentActivity] = Field(default_factory=list)


class AvatarUpload(ServerRecord):
    avatar_url: str | None = None
    user: UserProfile | None = None


# =============================================================================
# DASHBOARD
# =============================================================================


class Badge(ServerRecord):
    id: str = ""
    name: str = ""
    icon: str = ""
    earned_date: str | None = None


class DashboardUser(ServerRecord):
    id: str = _id_field()
    name: str = ""
    avatar: str = ""
    is_premium: bool = False
    xp: int = 0
    level: int = 1
    xp_for_next_level: int = 0
    xp_progress: float = 0
    streak: int = 0
    last_activity_date: str | None = None
    badges: list[Badge] = Field(default_factory=list)


class DashboardStats(ServerRecord):
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    average_score: float = 0
    courses_completed: int = 0
    courses_in_progress: int = 0
    total_courses: int = 0


class WeeklyActivity(ServerRecord):
    day: str
    tests: int = 0


class CategoryProgress(ServerRecord):
    name: str
    value: float = 0


class Dashboard(ServerRecord):
    user: DashboardUser
    stats: DashboardStats = Field(default_factory=DashboardStats)
    weekly_activity: list[WeeklyActivity] = Field(default_factory=list)
    category_progress: list[CategoryProgress] = Field(default_factory=list)
    recent_attempts: list[dict[str, Any]] = Field(default_factory=list)
    new_badges: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# COURSES / VIDEOS
# =============================================================================


class Course(ServerRecord):
    id: str = _id_field()
    title: str
    description: str = ""
    category: str = ""
    duration: str | int = ""
    progress: float = 0
    icon: str | None = None
    lessons: int | None = None
    difficulty: str = ""
    is_premium: bool = False
    content: str | None = None


class Video(ServerRecord):
    id: str = _id_field()
    title: str
    description: str = ""
    category: str = ""
    duration: str | int = "0:00"
    progress: float = 0
    thumbnail: str = Field(
        default="", validation_alias=AliasChoices("thumbnail", "imageUrl")
    )
    url: str = Field(default="", validation_alias=AliasChoices("videoUrl", "url"))
    video_type: str = "url"
    views: int = Field(default=0, validation_alias=AliasChoices("viewCount", "views"))
    is_premium: bool = False


# =============================================================================
# TESTS / QUESTIONS
# =============================================================================


class Question(ServerRecord):
    id: str = _id_field()
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: int | str | None = None
    explanation: str = ""
    image: str | None = None
    category: str | None = None
    difficulty: str | None = None


class DrivingTest(ServerRecord):
    """A practice exam ("test" on the platform)."""

    id: str = _id_field()
    title: str
    description: str = ""
    difficulty: str = ""
    duration: int = 0
    question_count: int = 0
    questions: list[Question] = Field(default_factory=list)
    progress: float = 0
    category: str = "Examen"
    pass_threshold: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_questions(cls, data: Any) -> Any:
        """Accept populated questions, bare question ids, or a plain count."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        questions = data.get("questions")
        if isinstance(questions, int):
            data.setdefault("questionCount", questions)
            data["questions"] = []
        elif isinstance(questions, list):
            if questions and not all(isinstance(q, dict) for q in questions):
                data["questions"] = []
            if not data.get("questionCount"):
                data["questionCount"] = len(questions)
        elif questions is None:
            data.pop("questions", None)
        return data


class TestAttempt(ServerRecord):
    __test__ = False

    id: str = _id_field()
    user: str = ""
    test: str | dict[str, Any] = ""
    answers: list[Any] = Field(default_factory=list)
    score: float = 0
    passed: bool = False
    time_taken: int = 0
    created_at: str = ""

    @property
    def test_title(self) -> str:
        if isinstance(self.test, dict):
            return str(self.test.get("title", ""))
        return self.test


class SubmittedAnswer(ServerRecord):
    question_id: str
    selected_answer: int


class TestSubmission(ServerRecord):
    __test__ = False

    test_id: str
    answers: list[SubmittedAnswer]
    time_taken: int


class NextTest(ServerRecord):
    id: str = _id_field()
    title: str = ""
    category: str = ""
    duration: int = 0


class SubmissionResult(ServerRecord):
    """Graded submission, including gamification rewards."""

    success: bool = True
    message: str = ""
    test_attempt: TestAttempt | None = None
    score: float = 0
    passed: bool = False
    correct_count: int = 0
    total_questions: int = 0
    xp_earned: int = 0
    old_xp: int = 0
    new_total_xp: int = 0
    old_level: int = 0
    new_level: int = 0
    leveled_up: bool = False
    new_level_title: str = ""
    new_badges: list[Badge] = Field(default_factory=list)
    next_test: NextTest | None = None


class Correction(ServerRecord):
    question_id: str
    question_text: str = ""
    user_answer: int | None = None
    correct_answer: int | None = None
    is_correct: bool = False
    explanation: str = ""


class AttemptReview(ServerRecord):
    attempt: TestAttempt
    corrections: list[Correction] = Field(default_factory=list)


# =============================================================================
# PAYMENTS
# =============================================================================

PlanDuration = Literal["1month", "3months", "1year"]


class PaymentPlan(ServerRecord):
    duration: str
    price: float
    discount: float | None = None


class Payment(ServerRecord):
    id: str = _id_field()
    user: str = ""
    amount: float = 0
    currency: str = ""
    payment_method: str = "card"
    transaction_id: str = ""
    status: str = "pending"
    premium_duration: str = ""
    created_at: str = ""
    updated_at: str = ""


class PaymentReceipt(ServerRecord):
    payment: Payment
    payment_url: str | None = None
    message: str = ""


# =============================================================================
# ADMIN
# =============================================================================


class UserGrowthPoint(ServerRecord):
    date: str
    count: int = 0


class RevenueGrowthPoint(ServerRecord):
    date: str
    amount: float = 0


class AdminStats(ServerRecord):
    """Platform-wide counters for the admin overview."""

    total_users: int = 0
    premium_users: int = 0
    total_courses: int = 0
    total_videos: int = 0
    total_tests: int = 0
    total_questions: int = 0
    total_revenue: float = 0
    recent_users: list[UserProfile] = Field(default_factory=list)
    recent_payments: list[Payment] = Field(default_factory=list)
    user_growth: list[UserGrowthPoint] = Field(default_factory=list)
    revenue_growth: list[RevenueGrowthPoint] = Field(default_factory=list)
