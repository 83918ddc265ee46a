"""CLI commands for the auto-école client.

Public commands work without an account; protected ones need a
prior `autoecole login`. Failed requests print the server's message
and offer to retry.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from autoecole.api.client import ApiClient, ApiError, ApiStatusError
from autoecole.api.credentials import Credentials, CredentialsStore
from autoecole.assistant.conversation import AssistantConversation
from autoecole.config.app_config import AppConfig, load_app_config
from autoecole.services import Services, create_services
from autoecole.services.schemas import (
    DrivingTest,
    Question,
    SubmissionResult,
    SubmittedAnswer,
    TestSubmission,
)
from autoecole.speech.session import SpeechSession, SpeechState

logger = structlog.get_logger(__name__)

T = TypeVar("T")

app = typer.Typer(
    name="autoecole",
    help="Auto-école en ligne: code de la route, cours, vidéos et examens blancs.",
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# WIRING
# =============================================================================


def _build_client(config: AppConfig, store: CredentialsStore) -> ApiClient:
    """API client sending the stored bearer token."""
    return ApiClient(config.api, token_provider=store.get_access_token)


def _build_speech_session(config: AppConfig, client: ApiClient) -> SpeechSession:
    # pygame/pyttsx3 are only loaded when something is spoken
    from autoecole.speech.backends import create_speech_session

    return create_speech_session(config, client)


# Clients opened by the running command, closed when it ends
_open_clients: list[ApiClient] = []


def _close_clients() -> None:
    while _open_clients:
        _open_clients.pop().close()


def _context() -> tuple[AppConfig, CredentialsStore, Services]:
    config = load_app_config()
    store = CredentialsStore(config.state_dir)
    client = _build_client(config, store)
    _open_clients.append(client)
    services = create_services(client, store)
    return config, store, services


def _require_login(store: CredentialsStore) -> Credentials:
    """Protected commands stop here without stored credentials."""
    credentials = store.load()
    if credentials is None:
        console.print("[red]✗ Vous n'êtes pas connecté[/red]")
        console.print("  Utilisez: autoecole login")
        raise typer.Exit(code=1)
    return credentials


def _fetch(action: Callable[[], T], what: str) -> T:
    """Run a request, offering a retry on failure."""
    while True:
        try:
            return action()
        except ApiStatusError as e:
            console.print(f"[red]✗ {what}: {e}[/red]")
            if e.is_unauthorized:
                console.print("  Vérifiez vos identifiants ou reconnectez-vous: autoecole login")
                raise typer.Exit(code=1)
        except ApiError as e:
            console.print(f"[red]✗ {what}: {e}[/red]")
        except ValidationError as e:
            logger.warning("response_validation_failed", errors=e.error_count())
            console.print(f"[red]✗ {what}: réponse inattendue du serveur[/red]")

        if not typer.confirm("Réessayer ?", default=False):
            raise typer.Exit(code=1)


def _truncate(text: str, max_len: int = 80) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _premium_label(is_premium: bool) -> str:
    return "[yellow]Premium[/yellow]" if is_premium else "Gratuit"


# =============================================================================
# ACCOUNT
# =============================================================================


@app.callback()
def main(ctx: typer.Context) -> None:
    ctx.call_on_close(_close_clients)


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Adresse e-mail"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Se connecter et mémoriser le jeton d'accès."""
    _, _, services = _context()
    session = _fetch(lambda: services.auth.login(email, password), "Connexion échouée")

    console.print(f"[green]✓ Bienvenue {session.user.name or session.user.email}[/green]")
    if session.user.is_premium:
        console.print("  [yellow]Compte Premium[/yellow]")


@app.command()
def register(
    name: str = typer.Option(..., "--name", "-n", prompt="Nom"),
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
    phone: str = typer.Option("", "--phone", help="Téléphone (optionnel)"),
) -> None:
    """Créer un compte."""
    _, _, services = _context()
    session = _fetch(
        lambda: services.auth.register(name, email, password, phone or None),
        "Inscription échouée",
    )
    console.print(f"[green]✓ Compte créé pour {session.user.email}[/green]")


@app.command()
def logout() -> None:
    """Se déconnecter et effacer les jetons locaux."""
    _, store, services = _context()
    _require_login(store)
    services.auth.logout()
    console.print("[green]✓ Déconnecté[/green]")


@app.command(name="forgot-password")
def forgot_password(
    email: str = typer.Option(..., "--email", "-e", prompt=True),
) -> None:
    """Recevoir un e-mail de réinitialisation du mot de passe."""
    _, _, services = _context()
    message = _fetch(lambda: services.auth.forgot_password(email), "Demande échouée")
    console.print(f"[green]✓ {message or 'E-mail envoyé'}[/green]")


@app.command(name="change-password")
def change_password(
    current: str = typer.Option(..., "--current", prompt="Mot de passe actuel", hide_input=True),
    new: str = typer.Option(
        ..., "--new", prompt="Nouveau mot de passe", hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Changer de mot de passe."""
    _, store, services = _context()
    _require_login(store)
    message = _fetch(lambda: services.users.change_password(current, new), "Échec")
    console.print(f"[green]✓ {message or 'Mot de passe modifié'}[/green]")


@app.command()
def profile() -> None:
    """Afficher le profil et les statistiques."""
    _, store, services = _context()
    _require_login(store)
    overview = _fetch(services.users.get_profile, "Chargement du profil")

    user = overview.user
    console.print(f"\n[bold]{user.name}[/bold] <{user.email}>")
    console.print(f"  [dim]rôle:[/dim]     {user.role}")
    console.print(f"  [dim]compte:[/dim]   {_premium_label(user.is_premium)}")
    if user.premium_expiry_date:
        console.print(f"  [dim]expire:[/dim]   {user.premium_expiry_date}")

    stats = overview.stats
    console.print(f"\n  Cours terminés:  {stats.courses_completed}")
    console.print(f"  Tests passés:    {stats.total_tests} ({stats.passed_tests} réussis)")
    console.print(f"  Score moyen:     {stats.average_score:.0f}%")


@app.command()
def progress() -> None:
    """Afficher la progression et l'activité récente."""
    _, store, services = _context()
    _require_login(store)
    data = _fetch(services.users.get_progress, "Chargement de la progression")

    console.print("\n[bold]Progression[/bold]")
    console.print(f"  Cours terminés: {data.total_courses_completed}")
    console.print(
        f"  Tests: {data.total_tests_taken} passés, {data.total_tests_passed} réussis"
    )
    console.print(f"  Score moyen: {data.average_score:.0f}%")

    if data.recent_activity:
        console.print("\n[bold]Activité récente[/bold]")
        for item in data.recent_activity:
            score = f" — {item.score:.0f}%" if item.score is not None else ""
            console.print(f"  [{item.date}] {item.type}: {item.title}{score}")


@app.command()
def dashboard() -> None:
    """Tableau de bord: niveau, XP, série, badges."""
    _, store, services = _context()
    _require_login(store)
    data = _fetch(services.dashboard.get_dashboard, "Erreur tableau de bord")

    user = data.user
    console.print(f"\n[bold]{user.name}[/bold] — niveau {user.level}")
    console.print(f"  XP: {user.xp} ({user.xp_progress:.0f}% vers le niveau suivant)")
    console.print(f"  Série: {user.streak} jour(s)")
    if user.badges:
        console.print("  Badges: " + ", ".join(f"{b.icon} {b.name}" for b in user.badges))

    stats = data.stats
    table = Table(title="Statistiques")
    table.add_column("Tests")
    table.add_column("Réussis")
    table.add_column("Échoués")
    table.add_column("Score moyen")
    table.add_column("Cours")
    table.add_row(
        str(stats.total_tests),
        str(stats.passed_tests),
        str(stats.failed_tests),
        f"{stats.average_score:.0f}%",
        f"{stats.courses_completed}/{stats.total_courses}",
    )
    console.print(table)

    if data.weekly_activity:
        console.print("\n[bold]Cette semaine[/bold]")
        for day in data.weekly_activity:
            console.print(f"  {day.day:<4} {'█' * day.tests} {day.tests}")


@app.command()
def review() -> None:
    """Revoir les questions ratées."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(services.dashboard.get_incorrect_answers, "Erreur révision")

    if not items:
        console.print("[green]Aucune erreur à revoir[/green]")
        return

    for i, item in enumerate(items, 1):
        question = item.get("question") or item.get("questionText") or ""
        if isinstance(question, dict):
            question = question.get("question", "")
        console.print(f"\n[blue]{i}.[/blue] [bold]{question}[/bold]")
        if item.get("explanation"):
            console.print(f"   [dim]{item['explanation']}[/dim]")


# =============================================================================
# ARTICLES, ASSISTANT, SPEECH
# =============================================================================


@app.command()
def articles() -> None:
    """Lister les articles du code de la route."""
    _, _, services = _context()
    summaries = _fetch(services.articles.list_articles, "Chargement des articles")

    if not summaries:
        console.print("[yellow]Aucun article[/yellow]")
        return

    table = Table(title=f"Articles ({len(summaries)})")
    table.add_column("N°", justify="right")
    table.add_column("Titre")
    table.add_column("Niveau")
    table.add_column("Durée")
    for a in summaries:
        table.add_row(
            str(a.article_number),
            _truncate(a.title, 60),
            a.difficulty_level,
            f"{a.estimated_study_time_minutes} min",
        )
    console.print(table)


@app.command()
def article(
    number: int = typer.Argument(..., help="Numéro de l'article"),
) -> None:
    """Afficher un article avec ses définitions."""
    _, _, services = _context()
    data = _fetch(lambda: services.articles.get_article(number), "Chargement de l'article")

    meta = data.learning_metadata
    console.print(f"\n[bold]Article {data.article_number} — {data.title}[/bold]")
    console.print(
        f"[dim]{meta.difficulty_level} · {meta.estimated_study_time_minutes} min[/dim]\n"
    )
    console.print(data.full_text)

    if data.definitions:
        table = Table(title="Définitions")
        table.add_column("Terme")
        table.add_column("Définition")
        for d in data.definitions:
            table.add_row(d.term, d.definition)
        console.print(table)


@app.command()
def ask(
    number: int = typer.Argument(..., help="Article de contexte"),
    question: list[str] = typer.Option(
        None, "--question", "-q", help="Question (répétable); sinon mode interactif"
    ),
) -> None:
    """Poser des questions à l'assistant sur un article."""
    _, _, services = _context()
    conversation = AssistantConversation(services.articles, number)

    def _show(reply) -> None:
        color = "red" if reply.is_error else "cyan"
        console.print(f"[{color}]Assistant:[/{color}] {reply.content}")
        if reply.sources:
            console.print(f"  [dim]Sources: {', '.join(reply.sources)}[/dim]")

    if question:
        for q in question:
            console.print(f"[bold]Vous:[/bold] {q}")
            reply = conversation.ask(q)
            if reply is not None:
                _show(reply)
        return

    console.print(f"[bold]Assistant — article {number}[/bold]")
    console.print("[dim]Suggestions:[/dim]")
    for s in conversation.suggested_questions:
        console.print(f"  • {s}")
    console.print("[dim]Ligne vide pour quitter.[/dim]\n")

    while True:
        text = typer.prompt("Vous", default="", show_default=False)
        if not text.strip():
            break
        reply = conversation.ask(text)
        if reply is not None:
            _show(reply)


def _speak_and_wait(session: SpeechSession, text: str) -> None:
    try:
        final_state = session.speak(text)
        if final_state is SpeechState.PLAYING:
            clip = session.active_clip
            source = clip.source if clip else "?"
            console.print(f"[green]♪ Lecture ({source})[/green]")
        elif session.is_synthesizing:
            console.print("[green]♪ Synthèse vocale[/green]")
        else:
            return
        try:
            session.wait()
        except KeyboardInterrupt:
            session.cancel()
            console.print("[yellow]Lecture interrompue[/yellow]")
    finally:
        session.close()


@app.command()
def speak(
    text: str = typer.Argument(..., help="Texte à lire à voix haute"),
) -> None:
    """Lire un texte à voix haute."""
    config, _, services = _context()
    session = _build_speech_session(config, services.client)
    _speak_and_wait(session, text)


@app.command(name="read-article")
def read_article(
    number: int = typer.Argument(..., help="Numéro de l'article"),
) -> None:
    """Lire un article à voix haute."""
    config, _, services = _context()
    data = _fetch(lambda: services.articles.get_article(number), "Chargement de l'article")
    console.print(f"[bold]Article {data.article_number} — {data.title}[/bold]")

    session = _build_speech_session(config, services.client)
    _speak_and_wait(session, f"{data.title}. {data.full_text}")


# =============================================================================
# COURSES & VIDEOS
# =============================================================================


@app.command()
def courses(
    category: str = typer.Option(None, "--category", "-c"),
    premium: bool = typer.Option(None, "--premium/--free", help="Filtrer par accès"),
    search: str = typer.Option(None, "--search", "-s"),
) -> None:
    """Lister les cours."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(
        lambda: services.courses.list_courses(category, premium, search),
        "Chargement des cours",
    )

    if not items:
        console.print("[yellow]Aucun cours[/yellow]")
        return

    table = Table(title=f"Cours ({len(items)})")
    table.add_column("ID")
    table.add_column("Titre")
    table.add_column("Catégorie")
    table.add_column("Durée")
    table.add_column("Accès")
    for c in items:
        table.add_row(c.id, _truncate(c.title, 50), c.category, str(c.duration), _premium_label(c.is_premium))
    console.print(table)


@app.command()
def course(course_id: str = typer.Argument(...)) -> None:
    """Afficher un cours."""
    _, store, services = _context()
    _require_login(store)
    data = _fetch(lambda: services.courses.get_course(course_id), "Chargement du cours")

    try:
        services.courses.increment_view_count(course_id)
    except ApiError as e:
        logger.debug("course_view_count_failed", course_id=course_id, error=str(e))

    console.print(f"\n[bold]{data.title}[/bold] [dim]({data.category}, {data.duration})[/dim]")
    console.print(data.description)
    if data.content:
        console.print(f"\n{data.content}")


@app.command(name="complete-course")
def complete_course(course_id: str = typer.Argument(...)) -> None:
    """Marquer un cours comme terminé."""
    _, store, services = _context()
    _require_login(store)
    _fetch(lambda: services.courses.mark_completed(course_id), "Échec")
    console.print("[green]✓ Cours terminé[/green]")


@app.command()
def videos(
    category: str = typer.Option(None, "--category", "-c"),
    premium: bool = typer.Option(None, "--premium/--free"),
    search: str = typer.Option(None, "--search", "-s"),
) -> None:
    """Lister les vidéos."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(
        lambda: services.videos.list_videos(category, premium, search),
        "Chargement des vidéos",
    )

    if not items:
        console.print("[yellow]Aucune vidéo[/yellow]")
        return

    table = Table(title=f"Vidéos ({len(items)})")
    table.add_column("Titre")
    table.add_column("Durée")
    table.add_column("Vues", justify="right")
    table.add_column("Lien")
    for v in items:
        table.add_row(_truncate(v.title, 50), str(v.duration), str(v.views), v.url)
    console.print(table)


# =============================================================================
# TESTS
# =============================================================================


@app.command()
def tests(
    difficulty: str = typer.Option(None, "--difficulty", "-d"),
) -> None:
    """Lister les examens blancs."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(lambda: services.exams.list_tests(difficulty), "Chargement des tests")

    if not items:
        console.print("[yellow]Aucun test[/yellow]")
        return

    table = Table(title=f"Tests ({len(items)})")
    table.add_column("ID")
    table.add_column("Titre")
    table.add_column("Niveau")
    table.add_column("Questions", justify="right")
    table.add_column("Durée")
    for t in items:
        table.add_row(t.id, _truncate(t.title, 50), t.difficulty, str(t.question_count), f"{t.duration} min")
    console.print(table)


def _ask_option(num: int, total: int, question: Question) -> int:
    """Ask a multiple-choice question; loop until a valid 1-based choice."""
    console.print(f"\n[blue]Question {num}/{total}[/blue]")
    console.print(f"[bold]{question.question}[/bold]")
    if question.image:
        console.print(f"[dim]Image: {question.image}[/dim]")

    n_options = len(question.options)
    for idx, opt in enumerate(question.options, 1):
        console.print(f"  {idx}. {opt}")

    while True:
        raw = typer.prompt(f"Votre réponse (1-{n_options})")
        try:
            choice = int(raw.strip())
            if 1 <= choice <= n_options:
                return choice - 1
            console.print(f"[yellow]⚠ Choisissez entre 1 et {n_options}[/yellow]")
        except ValueError:
            console.print("[yellow]⚠ Entrez un numéro[/yellow]")


def _show_result(result: SubmissionResult) -> None:
    color = "green" if result.passed else "red"
    verdict = "Réussi" if result.passed else "Échoué"
    console.print(
        f"\n[{color}][bold]{verdict}[/bold] — {result.score:.0f}% "
        f"({result.correct_count}/{result.total_questions})[/{color}]"
    )
    if result.xp_earned:
        console.print(f"  +{result.xp_earned} XP (total {result.new_total_xp})")
    if result.leveled_up:
        console.print(
            f"  [yellow]★ Niveau {result.new_level}: {result.new_level_title}[/yellow]"
        )
    for badge in result.new_badges:
        console.print(f"  [magenta]Nouveau badge: {badge.icon} {badge.name}[/magenta]")
    if result.next_test:
        console.print(
            f"\n  Test suivant: {result.next_test.title} "
            f"(autoecole take-test {result.next_test.id})"
        )


@app.command(name="take-test")
def take_test(test_id: str = typer.Argument(..., help="ID du test")) -> None:
    """Passer un examen blanc en mode interactif."""
    _, store, services = _context()
    _require_login(store)
    test: DrivingTest = _fetch(lambda: services.exams.get_test(test_id), "Chargement du test")

    if not test.questions:
        console.print("[red]✗ Ce test ne contient aucune question[/red]")
        raise typer.Exit(code=1)

    console.print(f"\n[bold]{test.title}[/bold] — {len(test.questions)} questions, {test.duration} min")

    started = time.monotonic()
    answers = [
        SubmittedAnswer(question_id=q.id, selected_answer=_ask_option(i, len(test.questions), q))
        for i, q in enumerate(test.questions, 1)
    ]
    submission = TestSubmission(
        test_id=test.id or test_id,
        answers=answers,
        time_taken=int(time.monotonic() - started),
    )

    result = _fetch(lambda: services.exams.submit_test(submission), "Envoi des réponses")
    _show_result(result)


@app.command()
def attempts() -> None:
    """Historique des tentatives."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(services.exams.list_attempts, "Chargement des tentatives")

    if not items:
        console.print("[yellow]Aucune tentative[/yellow]")
        return

    table = Table(title=f"Tentatives ({len(items)})")
    table.add_column("ID")
    table.add_column("Test")
    table.add_column("Score", justify="right")
    table.add_column("Résultat")
    table.add_column("Date")
    for a in items:
        verdict = "[green]réussi[/green]" if a.passed else "[red]échoué[/red]"
        table.add_row(a.id, _truncate(a.test_title, 40), f"{a.score:.0f}%", verdict, a.created_at)
    console.print(table)


@app.command()
def attempt(attempt_id: str = typer.Argument(...)) -> None:
    """Corrigé détaillé d'une tentative."""
    _, store, services = _context()
    _require_login(store)
    data = _fetch(lambda: services.exams.get_attempt(attempt_id), "Chargement de la tentative")

    console.print(f"\n[bold]{data.attempt.test_title}[/bold] — {data.attempt.score:.0f}%")
    for i, c in enumerate(data.corrections, 1):
        mark = "[green]✓[/green]" if c.is_correct else "[red]✗[/red]"
        console.print(f"\n{mark} [bold]{i}. {c.question_text}[/bold]")
        if not c.is_correct and c.correct_answer is not None:
            user_answer = "-" if c.user_answer is None else c.user_answer + 1
            console.print(f"   Votre réponse: {user_answer} · Bonne réponse: {c.correct_answer + 1}")
        if c.explanation:
            console.print(f"   [dim]{c.explanation}[/dim]")


# =============================================================================
# PREMIUM
# =============================================================================


@app.command()
def plans() -> None:
    """Formules d'abonnement Premium."""
    _, _, services = _context()
    items = _fetch(services.payments.list_plans, "Chargement des formules")

    table = Table(title="Premium")
    table.add_column("Formule")
    table.add_column("Prix", justify="right")
    table.add_column("Remise", justify="right")
    for p in items:
        discount = f"-{p.discount:.0f}%" if p.discount else ""
        table.add_row(p.duration, f"{p.price:g} DT", discount)
    console.print(table)


@app.command()
def payments() -> None:
    """Historique des paiements."""
    _, store, services = _context()
    _require_login(store)
    items = _fetch(services.payments.payment_history, "Chargement des paiements")

    if not items:
        console.print("[yellow]Aucun paiement[/yellow]")
        return

    table = Table(title="Paiements")
    table.add_column("Date")
    table.add_column("Montant", justify="right")
    table.add_column("Formule")
    table.add_column("Statut")
    for p in items:
        table.add_row(p.created_at, f"{p.amount:g} {p.currency}", p.premium_duration, p.status)
    console.print(table)
