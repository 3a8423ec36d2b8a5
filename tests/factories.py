"""
Stored-shape payload builders shared by unit and integration tests.
"""


def make_question(question_id, difficulty="easy", topic="Basics", qtype="multiple-choice", answer="A"):
    """Stored question payload, already in validated shape."""
    points = {"easy": 5, "medium": 10, "hard": 15}[difficulty]
    if qtype == "short-answer":
        options = []
    elif qtype == "true-false":
        options = [
            {"text": "True", "is_correct": answer == "True"},
            {"text": "False", "is_correct": answer == "False"},
        ]
    else:
        options = [{"text": text, "is_correct": text == answer} for text in ("A", "B", "C", "D")]

    return {
        "question_id": question_id,
        "text": f"Question {question_id}?",
        "type": qtype,
        "options": options,
        "correct_answer": answer,
        "topic": topic,
        "difficulty": difficulty,
        "explanation": f"Because {answer}.",
        "points": points,
    }
