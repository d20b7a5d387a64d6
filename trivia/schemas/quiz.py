from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from trivia.schemas.base import WireModel


class QuestionOption(WireModel):
    text: str
    image: Optional[str] = None


class TrueFalseQuestion(WireModel):
    id: str
    type: Literal["true-false"] = "true-false"
    question: str
    correct_answer: bool
    image: Optional[str] = None

    def public_view(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"correct_answer"})

    def correct_view(self):
        return self.correct_answer


class StandardQuestion(WireModel):
    id: str
    type: Literal["standard"] = "standard"
    question: str
    options: List[QuestionOption] = Field(default_factory=list)
    correct_answers: List[int] = Field(default_factory=list)
    image: Optional[str] = None

    def public_view(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"correct_answers"})

    def correct_view(self):
        return list(self.correct_answers)


Question = Annotated[Union[TrueFalseQuestion, StandardQuestion], Field(discriminator="type")]


class QuizContent(WireModel):
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)


class GameSettings(WireModel):
    question_time_limit: int = Field(default=30, ge=1)
    show_correct_answers: bool = True
    allow_late_joins: bool = True
