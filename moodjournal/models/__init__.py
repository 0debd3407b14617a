from moodjournal.models.entities import Answer, NotificationSchedule, Question
from moodjournal.models.question_kind import QuestionType

__all__ = ["Answer", "NotificationSchedule", "Question", "QuestionType"]
