# feedback.py
from typing import List

from kinetic_engine.models.schemas import Assessment, Ranking

# (minimum score, percentile, category), best band first
RANKING_BANDS = [
    (90, 95, "Elite"),
    (80, 85, "Advanced"),
    (70, 70, "Intermediate"),
    (60, 50, "Beginner"),
]


def calculate_ranking(score: float) -> Ranking:
    """
    Map a test score onto its national ranking band.
    Scores below every band rank as Novice.
    """
    for minimum, percentile, category in RANKING_BANDS:
        if score >= minimum:
            return Ranking(percentile=percentile, category=category)
    return Ranking(percentile=25, category="Novice")


def attach_ranking(assessment: Assessment) -> Assessment:
    """Copy of the assessment with its ranking filled in from the frozen metric score"""
    ranking = calculate_ranking(assessment.performanceMetrics.score)
    return assessment.model_copy(update={"ranking": ranking})


def generate_feedback(assessment: Assessment) -> str:
    """
    Short coaching message for the athlete.
    Wording depends on the test score band and names the test performed.
    """
    score = assessment.performanceMetrics.score
    test_type = assessment.testType.value

    if score >= 90:
        return f"Excellent {test_type} performance! You're in the top 10% nationally."
    if score >= 70:
        return f"Good {test_type} form. Focus on consistency to improve further."
    return f"Keep practicing your {test_type} technique. Consider working on flexibility and strength."


def generate_badges(assessment: Assessment) -> List[str]:
    """
    Badges earned by the assessment from its score band and cheat verdict.
    Perfect Form also needs a mean detector confidence of at least 0.95.
    """
    badges = []
    score = assessment.performanceMetrics.score

    if score >= 90:
        badges.append("Gold Performance")
    if score >= 80:
        badges.append("Silver Performance")
    if not assessment.aiAnalysis.cheatDetected:
        badges.append("Fair Play")
    if assessment.aiAnalysis.confidenceScore >= 0.95:
        badges.append("Perfect Form")

    return badges
