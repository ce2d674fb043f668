"""Service for quiz scores and the end-of-game leaderboard."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from jolly_quiz.core import session_rules
from jolly_quiz.core.models import Answer, PlayerScore, PlayerStatus
from jolly_quiz.core.services.game_session import GameSession


@dataclass(slots=True)
class LeaderboardRow:
    """Ranked scoreboard entry returned to consumers."""

    rank: int
    score: PlayerScore

    @property
    def finished(self) -> bool:
        return self.score.player.status is PlayerStatus.FINISHED


class Scoreboard:
    """Ranks the players of a quiz by correct answers."""

    def __init__(self, session: GameSession) -> None:
        self._session = session

    def scores(self, quiz_id: str) -> list[PlayerScore]:
        question_ids = {question.id for question in self._session.list_questions(quiz_id)}
        answers_by_player: dict[str, list[Answer]] = defaultdict(list)
        for answer in self._session.list_quiz_answers(quiz_id):
            if answer.question_id in question_ids:
                answers_by_player[answer.player_id].append(answer)
        return [
            PlayerScore(
                player=player,
                correct_answers=session_rules.count_correct(answers_by_player[player.id]),
                total_questions=len(question_ids),
            )
            for player in self._session.list_players(quiz_id)
        ]

    def leaderboard(self, quiz_id: str) -> list[LeaderboardRow]:
        """Return every player sorted by correct answers, earliest joiner first on ties.

        Players with the same number of correct answers share a rank.
        """
        ordered = sorted(
            self.scores(quiz_id),
            key=lambda score: (-score.correct_answers, score.player.joined_at),
        )
        rows: list[LeaderboardRow] = []
        for position, score in enumerate(ordered, start=1):
            if rows and rows[-1].score.correct_answers == score.correct_answers:
                rank = rows[-1].rank
            else:
                rank = position
            rows.append(LeaderboardRow(rank=rank, score=score))
        return rows

    def get_top_scorers(self, quiz_id: str, limit: int = 3) -> list[LeaderboardRow]:
        return self.leaderboard(quiz_id)[:limit]
