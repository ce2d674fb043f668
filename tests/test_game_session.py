from __future__ import annotations

from threading import Barrier, Thread

import pytest

from jolly_quiz.core.avatars import AVATARS, AvatarAssigner
from jolly_quiz.core.errors import (
    AlreadyFinishedError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
)
from jolly_quiz.core.models import PlayerStatus, QuizStatus
from jolly_quiz.core.quiz_manager import QuizManager
from jolly_quiz.core.services.game_session import GameSession
from jolly_quiz.core.store import InMemoryRecordStore, RecordKind

from conftest import text_question


class _FlakyPlayerQueries(InMemoryRecordStore):
    """Fails the next ``failures`` player queries once armed."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 0

    def query_records(self, kind, where=None, order_by=None):
        if RecordKind(kind) is RecordKind.PLAYERS and self.failures > 0:
            self.failures -= 1
            raise StoreUnavailableError("store timed out")
        return super().query_records(kind, where, order_by)


def test_join_creates_playing_player_at_first_question(manager, make_quiz):
    quiz, _ = make_quiz()
    player = manager.session.join(quiz.game_code, "Ada")
    assert player.quiz_id == quiz.id
    assert player.status is PlayerStatus.PLAYING
    assert player.current_question_index == 0
    assert player.avatar_id in {avatar.id for avatar in AVATARS}
    assert [p.id for p in manager.session.list_players(quiz.id)] == [player.id]


def test_join_code_is_case_insensitive(manager, make_quiz):
    quiz, _ = make_quiz()
    player = manager.session.join(f"  {quiz.game_code.lower()} ", "Ada")
    assert player.quiz_id == quiz.id


def test_join_unknown_code_raises_not_found(manager, make_quiz):
    make_quiz()
    with pytest.raises(NotFoundError):
        manager.session.join("ZZZZZZ", "Ada")


def test_join_allowed_after_start(manager, make_quiz):
    quiz, _ = make_quiz()
    manager.session.start(quiz.id)
    player = manager.session.join(quiz.game_code, "Late")
    assert player.current_question_index == 0


@pytest.mark.parametrize("player_count", [0, 1, 3])
def test_join_finished_quiz_raises_already_finished(manager, make_quiz, player_count):
    quiz, _ = make_quiz(1)
    players = [manager.session.join(quiz.game_code, f"P{i}") for i in range(player_count)]
    manager.session.start(quiz.id)
    for player in players:
        manager.session.advance_player(player.id)
    if not players:
        manager.store.update_record(RecordKind.QUIZZES, quiz.id, {"status": QuizStatus.FINISHED})
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.FINISHED

    with pytest.raises(AlreadyFinishedError):
        manager.session.join(quiz.game_code, "Too late")


def test_avatars_are_unique_until_palette_runs_out(manager, make_quiz):
    quiz, _ = make_quiz()
    players = [manager.session.join(quiz.game_code, f"P{i}") for i in range(len(AVATARS))]
    assert len({player.avatar_id for player in players}) == len(AVATARS)

    extra = manager.session.join(quiz.game_code, "One more")
    assert extra.avatar_id in {avatar.id for avatar in AVATARS}


def test_start_activates_waiting_quiz(manager, make_quiz):
    quiz, _ = make_quiz()
    player = manager.session.join(quiz.game_code, "Ada")
    started = manager.session.start(quiz.id)
    assert started.status is QuizStatus.ACTIVE
    assert manager.session.get_player(player.id).current_question_index == 0


def test_start_twice_is_invalid(manager, make_quiz):
    quiz, _ = make_quiz()
    manager.session.start(quiz.id)
    with pytest.raises(InvalidStateError):
        manager.session.start(quiz.id)


def test_submit_answer_upserts_per_question(manager, make_quiz):
    quiz, questions = make_quiz()
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)

    first = manager.session.submit_answer(player.id, questions[0].id, "wrong")
    second = manager.session.submit_answer(player.id, questions[0].id, "ANSWER 1")

    answers = manager.session.list_answers(player.id)
    assert len(answers) == 1
    assert answers[0].id == first.id == second.id
    assert answers[0].is_correct
    assert answers[0].answer_text == "ANSWER 1"
    assert manager.session.get_player(player.id).current_question_index == 0


def test_submit_answer_before_start_is_invalid(manager, make_quiz):
    quiz, questions = make_quiz()
    player = manager.session.join(quiz.game_code, "Ada")
    with pytest.raises(InvalidStateError):
        manager.session.submit_answer(player.id, questions[0].id, "answer 1")


def test_submit_answer_for_other_quiz_question_is_not_found(manager, make_quiz):
    quiz, _ = make_quiz()
    _, other_questions = make_quiz(title="Other")
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)
    with pytest.raises(NotFoundError):
        manager.session.submit_answer(player.id, other_questions[0].id, "answer 1")


def test_correctness_is_not_recomputed_after_question_edit(manager, make_quiz):
    quiz, questions = make_quiz(1)
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)
    manager.session.submit_answer(player.id, questions[0].id, "answer 1")

    manager.repository.update_question(questions[0].id, text_question("Question 1", "something else"))

    assert manager.session.list_answers(player.id)[0].is_correct
    assert manager.session.compute_score(player.id).correct_answers == 1


def test_advance_increments_then_finishes(manager, make_quiz):
    quiz, _ = make_quiz(2)
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)

    assert not manager.session.advance_player(player.id).finished
    assert manager.session.get_player(player.id).current_question_index == 1

    result = manager.session.advance_player(player.id)
    assert result.finished
    stored = manager.session.get_player(player.id)
    assert stored.status is PlayerStatus.FINISHED
    assert stored.current_question_index == 1


def test_advance_is_retry_safe_once_finished(manager, make_quiz):
    quiz, _ = make_quiz(1)
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)
    manager.session.advance_player(player.id)

    again = manager.session.advance_player(player.id)
    assert again.finished
    assert manager.session.get_player(player.id).current_question_index == 0


def test_compute_score_uses_total_question_count(manager, make_quiz):
    quiz, questions = make_quiz(4)
    player = manager.session.join(quiz.game_code, "Ada")
    manager.session.start(quiz.id)
    manager.session.submit_answer(player.id, questions[0].id, "answer 1")

    score = manager.session.compute_score(player.id)
    assert (score.correct_answers, score.total_questions) == (1, 4)


def test_single_player_walkthrough(manager, make_quiz):
    quiz, questions = make_quiz(3)
    player = manager.session.join(quiz.game_code, "A")
    manager.session.start(quiz.id)

    manager.session.submit_answer(player.id, questions[0].id, "answer 1")
    manager.session.submit_answer(player.id, questions[1].id, "nope")
    assert not manager.session.advance_player(player.id).finished
    assert not manager.session.advance_player(player.id).finished
    assert manager.session.current_question(player.id).id == questions[2].id
    manager.session.submit_answer(player.id, questions[2].id, "Answer 3")

    result = manager.session.advance_player(player.id)
    assert result.finished
    score = manager.session.compute_score(player.id)
    assert (score.correct_answers, score.total_questions) == (2, 3)
    assert manager.session.current_question(player.id) is None


def test_quiz_finishes_when_last_player_finishes(manager, make_quiz):
    quiz, _ = make_quiz(1)
    first = manager.session.join(quiz.game_code, "A")
    second = manager.session.join(quiz.game_code, "B")
    manager.session.start(quiz.id)

    result = manager.session.advance_player(first.id)
    assert result.finished and not result.quiz_finished
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.ACTIVE
    assert manager.session.get_player(second.id).status is PlayerStatus.PLAYING

    result = manager.session.advance_player(second.id)
    assert result.finished and result.quiz_finished
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.FINISHED


def test_simultaneous_finishers_close_the_quiz(manager, make_quiz):
    quiz, _ = make_quiz(1)
    players = [manager.session.join(quiz.game_code, f"P{i}") for i in range(8)]
    manager.session.start(quiz.id)
    barrier = Barrier(len(players))
    results = {}

    def finish(player_id: str) -> None:
        barrier.wait()
        results[player_id] = manager.session.advance_player(player_id)

    threads = [Thread(target=finish, args=(player.id,)) for player in players]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(result.finished for result in results.values())
    assert any(result.quiz_finished for result in results.values())
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.FINISHED


def test_completion_check_retries_transient_failures():
    store = _FlakyPlayerQueries()
    session = GameSession(store, avatars=AvatarAssigner(seed=1), reconcile_delay_seconds=0)
    repository = QuizManager(store=store).repository
    quiz = repository.create_quiz("Flaky")
    repository.add_question(quiz.id, text_question("Q", "a"))
    player = session.join(quiz.game_code, "Ada")
    session.start(quiz.id)

    store.failures = 2
    result = session.advance_player(player.id)

    assert result.quiz_finished
    assert session.get_quiz(quiz.id).status is QuizStatus.FINISHED


def test_failed_completion_check_keeps_player_finished_and_can_be_retried():
    store = _FlakyPlayerQueries()
    session = GameSession(store, reconcile_attempts=2, reconcile_delay_seconds=0)
    repository = QuizManager(store=store).repository
    quiz = repository.create_quiz("Flaky")
    repository.add_question(quiz.id, text_question("Q", "a"))
    player = session.join(quiz.game_code, "Ada")
    session.start(quiz.id)

    store.failures = 5
    with pytest.raises(StoreUnavailableError):
        session.advance_player(player.id)
    assert session.get_player(player.id).status is PlayerStatus.FINISHED
    assert session.get_quiz(quiz.id).status is QuizStatus.ACTIVE

    store.failures = 0
    assert session.advance_player(player.id).quiz_finished
    assert session.get_quiz(quiz.id).status is QuizStatus.FINISHED


def test_finished_quiz_is_never_reopened(manager, make_quiz):
    quiz, _ = make_quiz(1)
    player = manager.session.join(quiz.game_code, "A")
    manager.session.start(quiz.id)
    manager.session.advance_player(player.id)

    with pytest.raises(InvalidStateError):
        manager.session.start(quiz.id)
    assert manager.session.reconcile_completion(quiz.id)
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.FINISHED


def test_reconcile_leaves_empty_active_quiz_open(manager, make_quiz):
    quiz, _ = make_quiz(1)
    manager.session.start(quiz.id)
    assert not manager.session.reconcile_completion(quiz.id)
    assert manager.session.get_quiz(quiz.id).status is QuizStatus.ACTIVE


def test_concurrent_readers_never_see_all_finished_in_active_quiz(manager, make_quiz):
    quiz, _ = make_quiz(1)
    players = [manager.session.join(quiz.game_code, f"P{i}") for i in range(3)]
    manager.session.start(quiz.id)
    snapshots = []
    readers: list[Thread] = []

    def on_player_change(event):
        reader = Thread(target=lambda: snapshots.append(manager.game_state(quiz.game_code)))
        reader.start()
        readers.append(reader)

    unsubscribe = manager.store.changes.observe(RecordKind.PLAYERS, on_player_change)
    for player in players:
        manager.session.advance_player(player.id)
    unsubscribe()
    for reader in readers:
        reader.join(timeout=5)

    assert len(snapshots) == len(players)
    for state in snapshots:
        everyone_done = all(p.status is PlayerStatus.FINISHED for p in state.players)
        assert not everyone_done or state.quiz.status is QuizStatus.FINISHED
