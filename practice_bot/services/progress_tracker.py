from practice_bot.db.queries import get_user_history


async def format_history(user_id: int) -> str:
    """Format recent practice history as a readable text."""
    sessions = await get_user_history(user_id)

    if not sessions:
        return "📭 Ты ещё не проходил тренировки. Начни первую!"

    lines = ["📋 Последние тренировки:\n"]
    for s in sessions:
        mode_icon = "📖" if s["mode"] == "paced" else "⚡"
        accuracy = round(s["accuracy"])
        line = f"{mode_icon} {s['correct_answers']}/{s['total_questions']} ({accuracy}%)"
        if s["unanswered"]:
            line += f", без ответа: {s['unanswered']}"
        lines.append(line)

    total_correct = sum(s["correct_answers"] for s in sessions)
    total_questions = sum(s["total_questions"] for s in sessions)
    lines.append(f"\n📊 Всего: {total_correct} правильных из {total_questions}")

    return "\n".join(lines)
