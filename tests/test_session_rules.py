from __future__ import annotations

import pytest

from jolly_quiz.core import session_rules
from jolly_quiz.core.errors import AlreadyFinishedError, InvalidStateError
from jolly_quiz.core.models import (
    Player,
    PlayerStatus,
    Question,
    QuestionType,
    Quiz,
    QuizStatus,
)


def _quiz(status: QuizStatus = QuizStatus.ACTIVE) -> Quiz:
    return Quiz(id="q1", title="Quiz", game_code="ABC123", status=status)


def _player(index: int = 0, status: PlayerStatus = PlayerStatus.PLAYING, player_id: str = "p1") -> Player:
    return Player(
        id=player_id,
        quiz_id="q1",
        name="Ada",
        avatar_id="fox",
        status=status,
        current_question_index=index,
    )


def _question(*answers: str) -> Question:
    return Question(
        id="x1",
        quiz_id="q1",
        question_text="Capital of France?",
        question_type=QuestionType.TEXT,
        correct_answers=list(answers),
        order_index=0,
    )


@pytest.mark.parametrize("submitted", ["Paris", "PARIS", "paris", "pArIs"])
def test_answers_match_case_insensitively(submitted):
    assert session_rules.is_answer_correct(_question("Paris"), submitted)


def test_any_accepted_answer_counts():
    question = _question("Paris", "Paris, France")
    assert session_rules.is_answer_correct(question, "paris, france")
    assert not session_rules.is_answer_correct(question, "Lyon")


def test_matching_is_exact_apart_from_case():
    assert not session_rules.is_answer_correct(_question("Paris"), "Paris!")


def test_join_rejected_for_finished_quiz():
    with pytest.raises(AlreadyFinishedError):
        session_rules.check_can_join(_quiz(QuizStatus.FINISHED))
    session_rules.check_can_join(_quiz(QuizStatus.WAITING))
    session_rules.check_can_join(_quiz(QuizStatus.ACTIVE))


def test_display_name_is_cleaned():
    assert session_rules.clean_display_name("  Ada  ") == "Ada"
    with pytest.raises(ValueError):
        session_rules.clean_display_name("   ")
    with pytest.raises(ValueError):
        session_rules.clean_display_name("x" * 40)


def test_start_only_from_waiting():
    changes = session_rules.start_changes(_quiz(QuizStatus.WAITING), question_count=2)
    assert changes == {"status": QuizStatus.ACTIVE, "current_question_index": 0}
    for status in (QuizStatus.ACTIVE, QuizStatus.FINISHED):
        with pytest.raises(InvalidStateError):
            session_rules.start_changes(_quiz(status), question_count=2)


def test_start_requires_questions():
    with pytest.raises(InvalidStateError):
        session_rules.start_changes(_quiz(QuizStatus.WAITING), question_count=0)


def test_advance_moves_to_next_question():
    decision = session_rules.advance(_quiz(), _player(index=0), total_questions=3)
    assert not decision.finished
    assert decision.player_changes == {"current_question_index": 1}


def test_advance_on_last_question_finishes_player():
    decision = session_rules.advance(_quiz(), _player(index=2), total_questions=3)
    assert decision.finished
    assert decision.player_changes == {"status": PlayerStatus.FINISHED}


def test_advance_for_finished_player_needs_no_write():
    decision = session_rules.advance(_quiz(QuizStatus.FINISHED), _player(status=PlayerStatus.FINISHED), 3)
    assert decision.finished
    assert decision.player_changes == {}


def test_advance_requires_active_quiz():
    with pytest.raises(InvalidStateError):
        session_rules.advance(_quiz(QuizStatus.WAITING), _player(), total_questions=3)


def test_quiz_finishes_only_when_nobody_is_playing():
    finished = _player(status=PlayerStatus.FINISHED)
    playing = _player(player_id="p2")
    assert not session_rules.should_finish_quiz(_quiz(), [finished, playing])
    assert session_rules.should_finish_quiz(_quiz(), [finished])
    assert not session_rules.should_finish_quiz(_quiz(), [])
    assert not session_rules.should_finish_quiz(_quiz(QuizStatus.WAITING), [finished])
