import pytest

from feedback_assistant.config import FeedbackCategory
from feedback_assistant.session import (
    FeedbackSession,
    SessionClosedError,
    SessionStatus,
    SubmitResult,
)

QUESTIONS = ["How is leadership communicating?", "What should change?", "Anything else?"]


def _started(category=FeedbackCategory.LEADERSHIP, questions=QUESTIONS):
    session = FeedbackSession()
    request = session.select_category(category)
    assert session.apply_questions(request, questions)
    return session


def test_new_session_collects_details():
    session = FeedbackSession()

    assert session.status is SessionStatus.COLLECTING_DETAILS
    assert not session.accepting_input
    assert session.submit("hello") is SubmitResult.REJECTED


def test_selecting_category_awaits_questions_without_accepting_input():
    session = FeedbackSession()

    request = session.select_category(FeedbackCategory.DELIVERY)

    assert session.status is SessionStatus.AWAITING_QUESTIONS
    assert request.category is FeedbackCategory.DELIVERY
    assert session.submit("too early") is SubmitResult.REJECTED


def test_first_question_is_surfaced_after_load():
    session = _started()

    assert session.status is SessionStatus.IN_PROGRESS
    assert session.current_index == 0
    assert session.current_question.text == QUESTIONS[0]
    assert len({question.id for question in session.questions}) == len(QUESTIONS)


@pytest.mark.parametrize("count", [1, 2, 5])
def test_answering_every_question_completes_in_order(count):
    questions = [f"Question {index}?" for index in range(count)]
    session = _started(questions=questions)

    results = [session.submit(f"answer {index}") for index in range(count)]

    assert results[-1] is SubmitResult.COMPLETED
    assert all(result is SubmitResult.ADVANCED for result in results[:-1])
    assert session.status is SessionStatus.COMPLETE
    assert len(session.answers) == count
    for question, answer in zip(session.questions, session.answers):
        assert answer.question_id == question.id
        assert answer.question_text == question.text
    assert session.current_question is None


@pytest.mark.parametrize("blank", ["", "   ", "\n\t"])
def test_blank_answers_do_not_advance(blank):
    session = _started()

    assert session.submit(blank) is SubmitResult.IGNORED
    assert session.current_index == 0
    assert session.answers == []


def test_category_switch_discards_previous_answers():
    session = _started()
    session.submit("first answer")

    request = session.select_category(FeedbackCategory.DELIVERY)
    session.apply_questions(request, ["Delivery question?"])

    assert session.category is FeedbackCategory.DELIVERY
    assert session.answers == []
    assert session.current_index == 0
    assert [question.text for question in session.questions] == ["Delivery question?"]


@pytest.mark.parametrize("first", list(FeedbackCategory))
def test_switch_immediately_after_start_leaks_nothing(first):
    session = FeedbackSession()
    session.select_category(first)
    second = next(category for category in FeedbackCategory if category is not first)

    session.select_category(second)

    assert session.category is second
    assert session.answers == []
    assert session.current_index == 0


def test_stale_question_list_is_discarded():
    session = FeedbackSession()
    leadership = session.select_category(FeedbackCategory.LEADERSHIP)
    delivery = session.select_category(FeedbackCategory.DELIVERY)

    assert session.apply_questions(delivery, ["Delivery?"])
    assert not session.apply_questions(leadership, ["Leadership?"])

    assert [question.text for question in session.questions] == ["Delivery?"]


def test_reselecting_same_category_invalidates_older_request():
    session = FeedbackSession()
    older = session.select_category(FeedbackCategory.LEADERSHIP)
    newer = session.select_category(FeedbackCategory.LEADERSHIP)

    assert not session.apply_questions(older, ["Old?"])
    assert session.status is SessionStatus.AWAITING_QUESTIONS
    assert session.apply_questions(newer, ["New?"])


def test_empty_question_list_enters_free_text_mode():
    session = FeedbackSession()
    request = session.select_category(FeedbackCategory.DELIVERY)

    session.apply_questions(request, ["", "   "])

    assert session.free_text
    assert session.accepting_input
    assert session.current_question is None
    assert session.submit("done") is SubmitResult.COMPLETED
    assert session.raw_text == "done"
    assert session.answers == []
    assert session.feedback_text() == "done"


def test_free_text_message_is_stored_as_sent_and_completes():
    session = FeedbackSession()
    request = session.select_category(FeedbackCategory.VENDOR_MANAGEMENT)
    session.apply_questions(request, [])

    message = "  Invoices arrive late every month. "

    assert session.submit(message) is SubmitResult.COMPLETED
    assert session.status is SessionStatus.COMPLETE
    assert session.raw_text == message
    assert session.answers == []
    assert session.submit("more") is SubmitResult.REJECTED


def test_completed_session_rejects_category_change_and_answers():
    session = _started(questions=["Only question?"])
    session.submit("yes")

    with pytest.raises(SessionClosedError):
        session.select_category(FeedbackCategory.DELIVERY)
    assert session.submit("more") is SubmitResult.REJECTED
    assert len(session.answers) == 1


def test_feedback_text_renders_question_answer_pairs():
    session = _started(questions=["A?", "B?"])
    session.submit("one")
    session.submit("two")

    assert session.feedback_text() == "Q: A?\nA: one\n\nQ: B?\nA: two"
