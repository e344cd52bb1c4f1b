import services.scoring as scoring
from mock_interview.models import AnswerRecord, QuestionView


def _questions(count: int = 5):
    return [
        QuestionView(id=f"q_{i}", title=f"Q{i}", domain="Python", difficulty="Beginner", timeLimit=3)
        for i in range(1, count + 1)
    ]


def _answer(question_id: str, rating: int, time_spent: float = 30) -> AnswerRecord:
    return AnswerRecord(questionId=question_id, answer="a", rating=rating, feedback="f", timeSpent=time_spent)


def test_aggregate_mean_and_totals():
    stats = scoring.aggregate(_questions(), [_answer("q_1", 7, 45), _answer("q_2", 8, 15)])
    assert stats.totalQuestions == 5
    assert stats.answeredQuestions == 2
    assert stats.averageRating == 7.5
    assert stats.overallRating == 7.5
    assert stats.totalTimeSpent == 60


def test_aggregate_rounds_to_one_decimal():
    stats = scoring.aggregate(_questions(), [_answer("q_1", 7), _answer("q_2", 8), _answer("q_3", 8)])
    assert stats.overallRating == 7.7


def test_resubmission_last_write_wins():
    answers = [_answer("q_1", 3, 10), _answer("q_2", 6, 20), _answer("q_1", 9, 40)]
    effective = scoring.effective_answers(answers)
    assert [(a.questionId, a.rating) for a in effective] == [("q_1", 9), ("q_2", 6)]
    stats = scoring.aggregate(_questions(), answers)
    assert stats.answeredQuestions == 2
    assert stats.averageRating == 7.5
    assert stats.totalTimeSpent == 60


def test_aggregate_empty():
    stats = scoring.aggregate(_questions(), [])
    assert stats.answeredQuestions == 0
    assert stats.overallRating == 0.0


def test_half_tenths_round_up():
    answers = [_answer(f"q_{i}", rating) for i, rating in enumerate([7, 7, 7, 8], start=1)]
    stats = scoring.aggregate(_questions(), answers)
    assert stats.averageRating == 7.25
    assert stats.overallRating == 7.3
