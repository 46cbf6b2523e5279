"""
In-memory practice simulation.

Drives the full loop (start session -> answer -> refill) against a synthetic
question bank and a learner with a hidden "true" ability. Used by the CLI to
eyeball algorithm behaviour and by tests to check that ratings converge.
No storage, no UI.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace

from loguru import logger

from practice_engine.models import DIFFICULTIES, CandidateQuestion, LearnerProfile, SessionMode
from practice_engine.progress import apply_answer, extend_buffer, refill_buffer, start_session
from practice_engine.rating.elo import expected_score, initial_question_elo
from practice_engine.rating.estimate import EstimatedScore, estimate_section_score
from practice_engine.rating.skills import skills_by_module
from practice_engine.selection.randomness import SeededRandomSource
from practice_engine.selection.recommender import QuestionRecommender


@dataclass
class SimulationStep:
    """One answered question."""

    number: int
    question_id: str
    difficulty: str
    skill: str
    question_elo: float
    is_correct: bool
    rating: int


@dataclass
class SimulationReport:
    """Outcome of a simulated run."""

    module: str
    true_ability: float
    steps: list[SimulationStep] = field(default_factory=list)
    profile: LearnerProfile = field(default_factory=LearnerProfile)
    estimate: EstimatedScore | None = None

    @property
    def answered(self) -> int:
        return len(self.steps)

    @property
    def correct(self) -> int:
        return sum(1 for step in self.steps if step.is_correct)

    @property
    def accuracy(self) -> float:
        return self.correct / self.answered if self.answered else 0.0

    @property
    def final_rating(self) -> int:
        return self.steps[-1].rating if self.steps else self.profile.rating_for(self.module)

    def difficulty_counts(self) -> dict[str, int]:
        counts = {difficulty: 0 for difficulty in DIFFICULTIES}
        for step in self.steps:
            counts[step.difficulty] = counts.get(step.difficulty, 0) + 1
        return counts


class SimulatedLearner:
    """Answers correctly with the Elo-predicted probability for its true ability."""

    def __init__(self, true_ability: float, rng: random.Random):
        self.true_ability = true_ability
        self.rng = rng

    def answer(self, question: CandidateQuestion) -> bool:
        return self.rng.random() < expected_score(self.true_ability, question.elo)


def build_question_bank(module: str, per_skill: int = 6, seed: int = 0) -> list[CandidateQuestion]:
    """
    Create a synthetic bank covering every skill of a module.

    Difficulties cycle E, M, H within each skill; Elo starts from the
    difficulty default with a little jitter.
    """
    rng = random.Random(seed)
    bank: list[CandidateQuestion] = []
    for group in skills_by_module(module):
        for skill in group.skills:
            for i in range(per_skill):
                difficulty = DIFFICULTIES[i % len(DIFFICULTIES)]
                bank.append(
                    CandidateQuestion(
                        question_id=f"{module}-{len(bank):04d}",
                        module=module,
                        difficulty=difficulty,
                        skill=skill,
                        elo=round(initial_question_elo(difficulty) + rng.gauss(0, 40)),
                        domain=group.category,
                    )
                )
    return bank


def run_simulation(
    module: str = "math",
    questions: int = 30,
    true_ability: float = 1200.0,
    seed: int = 7,
    mode: SessionMode = SessionMode.SANDBOX,
    bank: list[CandidateQuestion] | None = None,
    profile: LearnerProfile | None = None,
    start_ms: int = 1_700_000_000_000,
    step_ms: int = 60_000,
) -> SimulationReport:
    """
    Run one simulated session.

    Args:
        module: Module to practise
        questions: Answers to simulate
        true_ability: Hidden ability of the simulated learner
        seed: Seed for the learner, the recommender and the synthetic bank
        mode: Session mode
        bank: Question bank (synthetic when None)
        profile: Starting profile (fresh learner when None)
        start_ms: Simulated clock start
        step_ms: Simulated time per answer

    Returns:
        SimulationReport
    """
    rng = random.Random(seed)
    learner = SimulatedLearner(true_ability, rng)
    recommender = QuestionRecommender(random_source=SeededRandomSource(seed))
    by_id = {q.question_id: q for q in (bank or build_question_bank(module, seed=seed))}
    profile = profile or LearnerProfile(user_id="simulated")
    now = start_ms

    session = start_session(
        session_id=f"sim-{seed}",
        user_id=profile.user_id,
        module=module,
        candidates=list(by_id.values()),
        recommender=recommender,
        profile=profile,
        mode=mode,
        now=now,
    )
    report = SimulationReport(module=module, true_ability=true_ability, profile=profile)

    for number in range(1, questions + 1):
        index = session.first_unanswered_index()
        if index is None:
            logger.warning(f"Simulation starved after {number - 1} questions")
            break

        question = by_id[session.buffered_questions[index].question_id]
        is_correct = learner.answer(question)
        now += step_ms
        result = apply_answer(session, profile, question, question.question_id, is_correct, now=now)

        by_id[question.question_id] = replace(
            question,
            elo=result.question_update.new_elo,
            elo_answer_count=result.question_update.new_answer_count,
        )
        report.steps.append(
            SimulationStep(
                number=number,
                question_id=question.question_id,
                difficulty=question.difficulty,
                skill=question.skill,
                question_elo=question.elo,
                is_correct=is_correct,
                rating=result.new_rating,
            )
        )

        profile = result.profile
        entries = refill_buffer(result.session, profile, list(by_id.values()), recommender, now=now)
        session = extend_buffer(result.session, entries)

    report.profile = profile
    report.estimate = estimate_section_score(profile.skill_elos, module, now=now)
    logger.info(
        f"Simulated {report.answered} {module} questions: accuracy {report.accuracy:.0%}, "
        f"rating {report.final_rating} (true ability {true_ability:.0f})"
    )
    return report
