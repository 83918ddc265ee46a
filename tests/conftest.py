"""Shared fixtures: a fake platform backend and test doubles.

The fake backend is a small FastAPI app mounted under /api. Services
talk to it through fastapi's TestClient, which is an httpx.Client, so
the real ApiClient code path (URL building, headers, error mapping)
is exercised end to end.
"""

from pathlib import Path

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.testclient import TestClient

from autoecole.api.client import ApiClient
from autoecole.api.credentials import Credentials, CredentialsStore
from autoecole.config.app_config import ApiSettings, SpeechSettings, clear_config_cache

TEST_BASE_URL = "http://testserver/api"
VALID_PASSWORD = "secret123"
ACCESS_TOKEN = "tok-123"

ARTICLE_1 = {
    "article_number": 1,
    "title": "Définitions",
    "document_name": "code_de_la_route",
    "page_title": "Article 1",
    "description": "Termes utilisés dans le code",
    "keywords": None,
    "content": {
        "full_text": "Au sens du présent code, on entend par route toute voie ouverte à la circulation.",
        "length": 80,
        "word_count": 14,
        "paragraphs": ["Au sens du présent code..."],
        "paragraph_count": 1,
        "numbered_items": [],
    },
    "definitions": [
        {"term": "route", "definition": "voie ouverte à la circulation publique"},
        {"term": "chaussée", "definition": "partie de la route normalement utilisée"},
    ],
    "definition_count": 2,
    "structure": {
        "has_structured_data": True,
        "has_amendments": False,
        "has_references": True,
        "referenced_articles": [2, 3],
    },
    "educational_content": None,
    "learning_metadata": {
        "difficulty_level": "beginner",
        "estimated_study_time_minutes": 5,
        "content_type": "definitions",
        "requires_visual_aids": False,
        "suitable_for_video": True,
    },
    "metadata": {"url": "https://example.tn/1", "language": "fr", "source": "jort"},
}

ARTICLE_2 = {
    "article_number": 2,
    "title": "Priorité à droite",
    "content": {"full_text": "Tout conducteur doit céder le passage à droite."},
    "learning_metadata": {"difficulty_level": "intermediate", "estimated_study_time_minutes": 3},
}

USER = {
    "_id": "u1",
    "name": "Amira",
    "email": "amira@example.tn",
    "role": "user",
    "isPremium": False,
}

COURSES = [
    {"_id": "c1", "title": "Signalisation", "category": "panneaux", "duration": "45 min", "isPremium": False},
    {"_id": "c2", "title": "Conduite de nuit", "category": "conduite", "duration": 30, "isPremium": True},
]

VIDEOS = [
    {
        "_id": "v1",
        "title": "Le rond-point",
        "category": "conduite",
        "duration": "3:20",
        "imageUrl": "https://cdn.example.tn/v1.jpg",
        "videoUrl": "https://cdn.example.tn/v1.mp4",
        "viewCount": 12,
    }
]

QUESTIONS = [
    {
        "_id": "q1",
        "question": "Que signifie un feu orange fixe ?",
        "options": ["Accélérer", "S'arrêter si possible", "Klaxonner"],
        "correctAnswer": 1,
        "explanation": "Le feu orange annonce le rouge.",
    },
    {
        "_id": "q2",
        "question": "Vitesse maximale en agglomération ?",
        "options": ["50 km/h", "70 km/h", "90 km/h"],
        "correctAnswer": 0,
    },
]

TEST_SUMMARY = {
    "_id": "t1",
    "title": "Examen blanc n°1",
    "difficulty": "facile",
    "duration": 15,
    "questions": ["q1", "q2"],
}


class FakeBackend:
    """In-memory stand-in for the platform REST API."""

    def __init__(self):
        self.app = FastAPI()
        self.requests: list[dict] = []
        self.bodies: dict[str, object] = {}
        self.canned: dict[tuple[str, str], tuple[int, object]] = {}
        self._install_routes()

    def fail(self, method: str, path: str, status: int, message: str = "Erreur") -> None:
        """Make the next calls to (method, path) answer with an error status."""
        self.canned[(method, path)] = (status, {"message": message})

    def respond(self, method: str, path: str, body: object, status: int = 200) -> None:
        """Make the next calls to (method, path) answer with a fixed JSON body."""
        self.canned[(method, path)] = (status, body)

    def last_request(self, path: str) -> dict:
        return [r for r in self.requests if r["path"] == path][-1]

    def _install_routes(self) -> None:
        app = self.app
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.requests.append(
                {
                    "method": request.method,
                    "path": request.url.path,
                    "query": dict(request.query_params),
                    "authorization": request.headers.get("authorization"),
                    "accept": request.headers.get("accept"),
                }
            )
            canned = backend.canned.get((request.method, request.url.path))
            if canned is not None:
                status, body = canned
                return JSONResponse(status_code=status, content=body)
            return await call_next(request)

        # --- auth -------------------------------------------------------

        @app.post("/api/auth/login")
        async def login(request: Request):
            body = await request.json()
            backend.bodies["login"] = body
            if body.get("password") != VALID_PASSWORD:
                return JSONResponse(status_code=401, content={"message": "Identifiants invalides"})
            return {"user": USER, "accessToken": ACCESS_TOKEN, "refreshToken": "ref-456"}

        @app.post("/api/auth/register")
        async def register(request: Request):
            body = await request.json()
            backend.bodies["register"] = body
            user = {**USER, "name": body["name"], "email": body["email"]}
            return JSONResponse(
                status_code=201,
                content={"user": user, "accessToken": "tok-new-user", "refreshToken": "ref-new"},
            )

        @app.post("/api/auth/logout")
        async def logout():
            return {"message": "Déconnexion réussie"}

        @app.post("/api/auth/refresh")
        async def refresh(request: Request):
            backend.bodies["refresh"] = await request.json()
            return {"accessToken": "tok-refreshed"}

        @app.post("/api/auth/forgot-password")
        async def forgot_password(request: Request):
            backend.bodies["forgot"] = await request.json()
            return {"message": "E-mail de réinitialisation envoyé"}

        # --- articles & assistant --------------------------------------

        @app.get("/api/articles")
        async def list_articles():
            return {
                "data": [
                    {
                        "article_number": a["article_number"],
                        "title": a["title"],
                        "difficulty_level": a["learning_metadata"]["difficulty_level"],
                        "estimated_study_time_minutes": a["learning_metadata"][
                            "estimated_study_time_minutes"
                        ],
                    }
                    for a in (ARTICLE_1, ARTICLE_2)
                ]
            }

        @app.post("/api/articles/context")
        async def articles_context(request: Request):
            body = await request.json()
            backend.bodies["context"] = body
            wanted = set(body["articleNumbers"])
            return {"data": [a for a in (ARTICLE_1, ARTICLE_2) if a["article_number"] in wanted]}

        @app.get("/api/articles/{number}")
        async def get_article(number: int):
            for a in (ARTICLE_1, ARTICLE_2):
                if a["article_number"] == number:
                    return {"data": a}
            return JSONResponse(status_code=404, content={"message": "Article introuvable"})

        @app.post("/api/assistant/chat")
        async def chat(request: Request):
            body = await request.json()
            backend.bodies["chat"] = body
            number = body.get("currentArticleNumber")
            return {
                "data": {
                    "answer": f"Réponse à: {body['question']}",
                    "context": {
                        "currentArticle": number,
                        "articlesUsed": [{"number": number, "title": f"Article {number}"}],
                    },
                }
            }

        # --- text to speech --------------------------------------------

        @app.post("/api/tts/speak")
        async def tts(request: Request):
            backend.bodies["tts"] = await request.json()
            return Response(content=b"ID3fake-mp3", media_type="audio/mpeg")

        # --- users -------------------------------------------------------

        @app.get("/api/users/profile")
        async def profile():
            return {
                "user": {**USER, "coursesCompleted": ["c1"], "testsTaken": ["t1"]},
                "stats": {"coursesCompleted": 1, "totalTests": 3, "passedTests": 2, "averageScore": 72.5},
                "recentAttempts": [],
            }

        @app.get("/api/users/progress")
        async def progress():
            return {
                "progress": {
                    "totalCoursesCompleted": 1,
                    "totalTestsTaken": 3,
                    "totalTestsPassed": 2,
                    "averageScore": 72.5,
                    "recentActivity": [
                        {"type": "test", "title": "Examen blanc n°1", "date": "2026-10-01", "score": 80},
                        {"type": "course", "title": "Signalisation", "date": "2026-09-30"},
                    ],
                }
            }

        @app.get("/api/users/dashboard")
        async def dashboard():
            return {
                "dashboard": {
                    "user": {
                        "_id": "u1",
                        "name": "Amira",
                        "xp": 340,
                        "level": 3,
                        "xpProgress": 40,
                        "streak": 4,
                        "badges": [{"id": "b1", "name": "Premier test", "icon": "🏁"}],
                    },
                    "stats": {"totalTests": 3, "passedTests": 2, "failedTests": 1, "averageScore": 72.5},
                    "weeklyActivity": [{"day": "Lun", "tests": 2}, {"day": "Mar", "tests": 0}],
                    "categoryProgress": [{"name": "panneaux", "value": 60}],
                }
            }

        @app.get("/api/users/incorrect-answers")
        async def incorrect_answers():
            return {"incorrectAnswers": [{"question": "Feu orange ?", "explanation": "Il annonce le rouge."}]}

        @app.post("/api/users/avatar")
        async def avatar(request: Request):
            raw = await request.body()
            backend.bodies["avatar"] = raw
            if b"name=\"avatar\"" not in raw:
                return JSONResponse(status_code=400, content={"message": "Aucune image"})
            return {"avatarUrl": "/uploads/u1.png", "user": {**USER, "avatar": "/uploads/u1.png"}}

        @app.put("/api/users/change-password")
        async def change_password(request: Request):
            backend.bodies["change_password"] = await request.json()
            return {"message": "Mot de passe modifié"}

        # --- courses & videos -------------------------------------------

        @app.get("/api/courses")
        async def list_courses(request: Request):
            items = COURSES
            category = request.query_params.get("category")
            if category:
                items = [c for c in items if c["category"] == category]
            return {"courses": items}

        @app.get("/api/courses/{course_id}")
        async def get_course(course_id: str):
            for c in COURSES:
                if c["_id"] == course_id:
                    return {"course": {**c, "description": "Cours complet", "content": "Contenu"}}
            return JSONResponse(status_code=404, content={"message": "Cours introuvable"})

        @app.post("/api/courses/{course_id}/view")
        async def view_course(course_id: str):
            return {"success": True}

        @app.post("/api/courses/{course_id}/complete")
        async def complete_course(course_id: str):
            backend.bodies["completed"] = course_id
            return {"success": True}

        @app.get("/api/videos")
        async def list_videos():
            return {"videos": VIDEOS}

        # --- tests ---------------------------------------------------------

        @app.get("/api/tests")
        async def list_tests():
            return {"tests": [TEST_SUMMARY]}

        @app.get("/api/tests/attempts")
        async def list_attempts():
            return {
                "attempts": [
                    {
                        "_id": "a1",
                        "test": {"_id": "t1", "title": "Examen blanc n°1"},
                        "score": 50,
                        "passed": False,
                        "createdAt": "2026-10-01",
                    }
                ]
            }

        @app.get("/api/tests/attempts/{attempt_id}")
        async def get_attempt(attempt_id: str):
            return {
                "attempt": {"_id": attempt_id, "test": {"title": "Examen blanc n°1"}, "score": 50},
                "corrections": [
                    {"questionId": "q1", "questionText": "Feu orange ?", "userAnswer": 0,
                     "correctAnswer": 1, "isCorrect": False, "explanation": "Il annonce le rouge."},
                    {"questionId": "q2", "questionText": "Vitesse ?", "userAnswer": 0,
                     "correctAnswer": 0, "isCorrect": True},
                ],
            }

        @app.get("/api/tests/{test_id}")
        async def get_test(test_id: str):
            if test_id != "t1":
                return {"success": False}
            return {"test": {**TEST_SUMMARY, "questions": QUESTIONS}}

        @app.post("/api/tests/{test_id}/submit")
        async def submit_test(test_id: str, request: Request):
            body = await request.json()
            backend.bodies["submit"] = body
            expected = {q["_id"]: q["correctAnswer"] for q in QUESTIONS}
            correct = sum(
                1 for a in body["answers"] if expected.get(a["questionId"]) == a["selectedAnswer"]
            )
            score = 100 * correct / len(QUESTIONS)
            return {
                "success": True,
                "score": score,
                "passed": score >= 70,
                "correctCount": correct,
                "totalQuestions": len(QUESTIONS),
                "xpEarned": 50,
                "newTotalXp": 390,
                "leveledUp": False,
                "newBadges": [],
            }

        # --- questions & payments ----------------------------------------

        @app.get("/api/questions/random")
        async def random_questions(request: Request):
            count = int(request.query_params.get("count", 10))
            return {"questions": QUESTIONS[:count]}

        @app.get("/api/payment/plans")
        async def plans():
            return {
                "plans": [
                    {"duration": "1month", "price": 29},
                    {"duration": "1year", "price": 249, "discount": 28},
                ]
            }

        @app.get("/api/payment/history")
        async def history():
            return {
                "payments": [
                    {"_id": "p1", "amount": 29, "currency": "TND", "paymentMethod": "card",
                     "status": "completed", "premiumDuration": "1month", "createdAt": "2026-09-01"}
                ]
            }

        @app.post("/api/payment/create")
        async def create_payment(request: Request):
            body = await request.json()
            backend.bodies["payment"] = body
            return {
                "payment": {"_id": "p2", "amount": 29, "status": "pending", "transactionId": "tx-9"},
                "paymentUrl": "https://pay.example.tn/tx-9",
                "message": "Paiement initié",
            }

        # --- admin ---------------------------------------------------------

        @app.get("/api/admin/stats")
        async def admin_stats():
            return {
                "stats": {
                    "totalUsers": 120,
                    "premiumUsers": 18,
                    "totalCourses": len(COURSES),
                    "totalVideos": len(VIDEOS),
                    "totalTests": 1,
                    "totalQuestions": len(QUESTIONS),
                    "totalRevenue": 522.0,
                    "recentUsers": [USER],
                    "recentPayments": [],
                    "userGrowth": [{"date": "2026-09", "count": 40}, {"date": "2026-10", "count": 80}],
                    "revenueGrowth": [{"date": "2026-10", "amount": 522.0}],
                }
            }

        @app.get("/api/admin/users")
        async def admin_users():
            admin = {**USER, "_id": "u2", "name": "Sami", "role": "moderator"}
            return {"users": [USER, admin]}

        @app.put("/api/admin/users/{user_id}")
        async def admin_update_user(user_id: str, request: Request):
            body = await request.json()
            backend.bodies["admin_user"] = body
            return {"user": {**USER, "_id": user_id, **body}}

        @app.delete("/api/admin/users/{user_id}")
        async def admin_delete_user(user_id: str):
            backend.bodies["deleted_user"] = user_id
            return {"message": "Utilisateur supprimé"}

        @app.get("/api/admin/courses")
        async def admin_courses():
            return {"courses": COURSES}

        @app.get("/api/admin/videos")
        async def admin_videos():
            return {"videos": VIDEOS}

        @app.get("/api/admin/payments")
        async def admin_payments():
            return {
                "payments": [
                    {"_id": "p1", "amount": 29, "paymentMethod": "card", "status": "completed"},
                    {"_id": "p3", "amount": 249, "paymentMethod": "flouci", "status": "chargeback"},
                ]
            }

        @app.get("/api/admin/settings")
        async def admin_settings():
            return {"settings": {"siteName": "Auto-école", "passingScore": 70}}

        @app.put("/api/admin/settings")
        async def admin_update_settings(request: Request):
            body = await request.json()
            backend.bodies["settings"] = body
            return {"settings": {"siteName": "Auto-école", "passingScore": 70, **body}}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Never read a developer's config file or state dir during tests."""
    monkeypatch.setenv("AUTOECOLE_CONFIG", str(tmp_path / "missing_config.yaml"))
    monkeypatch.setenv("AUTOECOLE_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("AUTOECOLE_API_BASE_URL", raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def http(backend):
    """httpx.Client bound to the fake backend."""
    with TestClient(backend.app) as client:
        yield client


@pytest.fixture
def store(tmp_path) -> CredentialsStore:
    return CredentialsStore(tmp_path / "state")


@pytest.fixture
def logged_in_store(store) -> CredentialsStore:
    store.save(Credentials(access_token=ACCESS_TOKEN, refresh_token="ref-456", user=dict(USER)))
    return store


@pytest.fixture
def api_client(http, store) -> ApiClient:
    return ApiClient(
        ApiSettings(base_url=TEST_BASE_URL),
        token_provider=store.get_access_token,
        http=http,
    )


@pytest.fixture
def speech_settings() -> SpeechSettings:
    return SpeechSettings()


class FakePlayer:
    """AudioPlayer double: records calls, busy until finish() is called."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.played: list = []
        self.stopped = 0
        self.paused = False
        self.busy = False

    def play(self, clip, volume: float = 1.0, rate: float = 1.0) -> None:
        if self.fail:
            from autoecole.speech.audio import PlaybackError

            raise PlaybackError("unsupported format")
        self.played.append(clip)
        self.busy = True

    def stop(self) -> None:
        self.stopped += 1
        self.busy = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def is_busy(self) -> bool:
        return self.busy

    def finish(self) -> None:
        self.busy = False


class FakeSynthesizer:
    """SpeechSynthesizer double: talks until finish() is called."""

    def __init__(self, available: bool = True, fail: bool = False):
        self.available = available
        self.fail = fail
        self.spoken: list[tuple[str, str]] = []
        self.stopped = 0
        self.iterations = 0
        self.closed = False
        self.busy = False

    def is_available(self) -> bool:
        return self.available

    def speak(self, text, language, rate=1.0, pitch=1.0, volume=1.0) -> None:
        if self.fail:
            raise RuntimeError("no voice")
        self.spoken.append((text, language))
        self.busy = True

    def iterate(self) -> None:
        self.iterations += 1

    def is_busy(self) -> bool:
        return self.busy

    def stop(self) -> None:
        self.stopped += 1
        self.busy = False

    def close(self) -> None:
        self.closed = True

    def finish(self) -> None:
        self.busy = False


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def sample_image(tmp_path) -> Path:
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    return path
