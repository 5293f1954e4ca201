"""Text rendering for the practice session messages."""
import html
import re
from typing import List, Optional

from practice_bot.engine.models import AnswerOutcome, SessionPhase
from practice_bot.engine.session import PracticeSession
from practice_bot.quiz_api.models import CompletionSummary, Question, SessionMode

_TAG_RE = re.compile(r"<[^>]+>")


def _plain(text: Optional[str]) -> str:
    """Strip HTML tags coming from the question bank and escape the rest."""
    if not text:
        return ""
    return html.escape(_TAG_RE.sub("", text).strip())


def format_timer(seconds: int) -> str:
    """Форматирует таймер: 75 → '1:15'."""
    seconds = max(0, seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_question(question: Question, position: int, total: int, seconds: int) -> str:
    """Question header, timer, scenario, question text and options."""
    clock = "⏰" if seconds <= 10 else "⏱"
    lines = [f"<b>❓ Вопрос {position + 1} из {total}</b>   {clock} {format_timer(seconds)}", ""]

    if question.scenario_text:
        lines.append(_plain(question.scenario_text))
        lines.append("")

    lines.append(f"<b>{_plain(question.question_text)}</b>")
    lines.append("")
    for key, text in question.options.items():
        lines.append(f"{key}) {_plain(text)}")

    return "\n".join(lines).rstrip()


def format_outcome(question: Question, outcome: AnswerOutcome, with_explanation: bool) -> str:
    """Verdict for an answered question, optionally with the explanation."""
    if outcome.is_timeout:
        verdict = "⌛ Время вышло"
    elif outcome.is_skipped:
        verdict = "⏭ Вопрос пропущен"
    elif outcome.is_correct:
        verdict = "✅ Правильно!"
    else:
        verdict = "❌ Неправильно"

    lines = [verdict]
    if not outcome.is_skipped:
        lines.append(f"Твой ответ: {outcome.selected_answer}) {_plain(question.option_text(outcome.selected_answer))}")

    if with_explanation:
        if not outcome.is_correct and outcome.correct_answer:
            correct_text = _plain(question.option_text(outcome.correct_answer))
            lines.append(f"📝 Правильный ответ: {outcome.correct_answer}) {correct_text}".rstrip())
        if outcome.explanation.text:
            lines.append("")
            lines.append(f"💡 {_plain(outcome.explanation.text)}")

    return "\n".join(lines)


def format_session_view(session: PracticeSession) -> str:
    """Whole message body for the current state of the session."""
    question = session.current_question
    if question is None:
        return "🏁 Тренировка завершена."

    seconds = session.cursor.timer_seconds_remaining
    parts: List[str] = [format_question(question, session.position, session.total, seconds)]

    outcome = session.current_outcome
    if outcome is not None:
        parts.append("")
        parts.append(format_outcome(question, outcome, session.cursor.is_explanation_visible))
        if session.mode == SessionMode.CONTINUOUS and session.phase == SessionPhase.SUBMITTING:
            parts.append("")
            parts.append("➡️ Следующий вопрос через пару секунд...")
    elif session.phase == SessionPhase.SUBMITTING:
        parts.append("")
        parts.append("⏳ Отправляю ответ...")
    elif session.last_failure is not None:
        parts.append("")
        parts.append("⚠️ Не удалось отправить ответ. Попробуй ещё раз.")

    return "\n".join(parts)


def format_results(summary: CompletionSummary, mode: Optional[SessionMode] = None) -> str:
    """Final results message."""
    percent = round(summary.accuracy)

    if percent >= 90:
        emoji = "🏆"
        comment = "Отличный результат!"
    elif percent >= 70:
        emoji = "👍"
        comment = "Хороший результат!"
    elif percent >= 50:
        emoji = "📖"
        comment = "Неплохо, но есть над чем поработать."
    else:
        emoji = "💪"
        comment = "Нужно ещё потренироваться. Ты справишься!"

    mode_line = ""
    if mode is not None:
        mode_name = "с разбором" if mode == SessionMode.PACED else "без остановок"
        mode_line = f"🎛 Режим: {mode_name}\n"

    return (
        f"📊 Результаты тренировки\n\n"
        f"{mode_line}"
        f"❓ Вопросов: {summary.total_questions}\n"
        f"✅ Правильно: {summary.correct_answers}\n"
        f"❌ Неправильно: {summary.incorrect_answers}\n"
        f"⏭ Без ответа: {summary.unanswered}\n"
        f"🏅 Очки: {summary.total_score}\n\n"
        f"{emoji} Точность: {percent}%\n\n"
        f"{comment}"
    )
