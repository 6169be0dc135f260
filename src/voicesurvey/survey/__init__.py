"""
Survey question catalog.
"""

from voicesurvey.survey.questions import Question, QuestionCatalog, load_question_catalog

__all__ = ["Question", "QuestionCatalog", "load_question_catalog"]
