import pytest

from docvoice.actions import Action, Intent
from docvoice.agent.executor import PlanExecutor
from docvoice.config import RetrievalConfig
from docvoice.errors import RetrievalError
from docvoice.types import SearchHit, SearchResult

NAVIGATION = [
    Intent.SCROLL_UP,
    Intent.SCROLL_DOWN,
    Intent.NEXT_PAGE,
    Intent.PREVIOUS_PAGE,
    Intent.SNAP_PAGE,
]


def test_find_fig_sets_pdf_and_page_from_top_hit(make_retriever, revenue_result) -> None:
    retriever = make_retriever(revenue_result)
    executor = PlanExecutor(retriever, "bucket-7")
    action = Action(intent=Intent.FIND_FIG, query="revenue growth figure")

    result = executor.execute(action)

    assert retriever.calls == [("bucket-7", "revenue growth figure")]
    assert result.action.pdf == "https://docs.example.com/annual-report.pdf"
    assert result.action.page == 4
    assert result.retrieval_text.startswith("Figure 3")
    assert action.pdf is None  # input untouched


def test_find_pdf_sets_pdf_only(make_retriever, revenue_result) -> None:
    executor = PlanExecutor(make_retriever(revenue_result), "bucket-7")

    result = executor.execute(Action(intent=Intent.FIND_PDF, query="the annual report"))

    assert result.action.pdf == "https://docs.example.com/annual-report.pdf"
    assert result.action.page is None


@pytest.mark.parametrize("intent", NAVIGATION + [Intent.NON_DETERM])
def test_non_retrieval_intents_never_search(make_retriever, intent: Intent) -> None:
    retriever = make_retriever()
    executor = PlanExecutor(retriever, "bucket-7")
    page = 3 if intent is Intent.SNAP_PAGE else None
    action = Action(intent=intent, query="move", page=page, does_follow_up=True)

    result = executor.execute(action)

    assert retriever.calls == []
    assert result.action == action
    assert result.followup_text is None


def test_execution_without_retrieval_is_idempotent(make_retriever) -> None:
    executor = PlanExecutor(make_retriever(), "bucket-7")
    action = Action(
        intent=Intent.SNAP_PAGE, query="go to page 5", context={"current_page": 1}, page=5
    )

    first = executor.execute(action)
    second = executor.execute(action)

    assert first == second
    assert first.action.page == 5


def test_followup_written_and_voiced_when_requested(
    make_retriever, revenue_result, chat_model, synthesizer
) -> None:
    chat_model.queue("From this document, on page 4, revenue grew 18% year over year.")
    executor = PlanExecutor(
        make_retriever(revenue_result), "bucket-7", llm=chat_model, synthesizer=synthesizer
    )
    action = Action(intent=Intent.FIND_FIG, query="how fast did revenue grow?", does_follow_up=True)

    result = executor.execute(action)

    assert result.followup_text.startswith("From this document")
    assert result.followup_audio == b"mp3:" + result.followup_text.encode("utf-8")
    assert result.degraded is None
    system_prompt = chat_model.calls[0][0].content
    assert "revenue growth of 18%" in system_prompt
    assert chat_model.calls[0][-1].content == "how fast did revenue grow?"


def test_no_followup_when_retrieval_text_is_empty(
    make_retriever, revenue_result, chat_model, synthesizer
) -> None:
    empty_text = SearchResult(hits=revenue_result.hits, text="   ")
    executor = PlanExecutor(
        make_retriever(empty_text), "bucket-7", llm=chat_model, synthesizer=synthesizer
    )

    result = executor.execute(
        Action(intent=Intent.FIND_FIG, query="revenue", does_follow_up=True)
    )

    assert result.action.pdf is not None
    assert result.followup_text is None
    assert chat_model.calls == []
    assert synthesizer.texts == []


def test_no_followup_when_not_requested(make_retriever, revenue_result, chat_model) -> None:
    executor = PlanExecutor(make_retriever(revenue_result), "bucket-7", llm=chat_model)

    result = executor.execute(Action(intent=Intent.FIND_PDF, query="annual report"))

    assert result.followup_text is None
    assert chat_model.calls == []


def test_retrieval_failure_surfaces_without_followup(make_retriever, chat_model) -> None:
    executor = PlanExecutor(make_retriever(fail=True), "bucket-7", llm=chat_model)

    with pytest.raises(RetrievalError):
        executor.execute(Action(intent=Intent.FIND_PDF, query="q3 report", does_follow_up=True))
    assert chat_model.calls == []


def test_empty_results_are_a_retrieval_error(make_retriever) -> None:
    executor = PlanExecutor(make_retriever(SearchResult(hits=[], text="")), "bucket-7")

    with pytest.raises(RetrievalError, match="No results"):
        executor.execute(Action(intent=Intent.FIND_FIG, query="nothing matches"))


def test_unconfigured_retriever_is_a_retrieval_error() -> None:
    executor = PlanExecutor(None, None)

    with pytest.raises(RetrievalError, match="not configured"):
        executor.execute(Action(intent=Intent.FIND_FIG, query="revenue"))


def test_low_confidence_top_hit_rejected_when_threshold_set(
    make_retriever, revenue_result
) -> None:
    executor = PlanExecutor(
        make_retriever(revenue_result),
        "bucket-7",
        retrieval_config=RetrievalConfig(min_score=0.95),
    )

    with pytest.raises(RetrievalError, match="below threshold"):
        executor.execute(Action(intent=Intent.FIND_FIG, query="revenue"))


def test_followup_speech_failure_keeps_action_and_text(
    make_retriever, revenue_result, chat_model, failing_synthesizer
) -> None:
    chat_model.queue("From this document, revenue grew 18%.")
    executor = PlanExecutor(
        make_retriever(revenue_result),
        "bucket-7",
        llm=chat_model,
        synthesizer=failing_synthesizer,
    )

    result = executor.execute(
        Action(intent=Intent.FIND_FIG, query="revenue growth", does_follow_up=True)
    )

    assert result.action.pdf == "https://docs.example.com/annual-report.pdf"
    assert result.action.page == 4
    assert result.followup_text == "From this document, revenue grew 18%."
    assert result.followup_audio is None
    assert result.degraded == "followup_speech"


def test_followup_model_failure_keeps_action(
    make_retriever, revenue_result, timeout_chat_model, synthesizer
) -> None:
    executor = PlanExecutor(
        make_retriever(revenue_result),
        "bucket-7",
        llm=timeout_chat_model,
        synthesizer=synthesizer,
    )

    result = executor.execute(
        Action(intent=Intent.FIND_FIG, query="revenue growth", does_follow_up=True)
    )

    assert result.action.page == 4
    assert result.followup_text is None
    assert result.degraded == "followup_compose"
    assert synthesizer.texts == []


def test_followup_without_model_extracts_leading_sentences(
    make_retriever, revenue_result
) -> None:
    executor = PlanExecutor(make_retriever(revenue_result), "bucket-7")

    result = executor.execute(
        Action(intent=Intent.FIND_FIG, query="revenue growth", does_follow_up=True)
    )

    assert result.followup_text == (
        "From this document: Figure 3 shows revenue growth of 18% year over year. "
        "Growth was led by services."
    )


def test_find_fig_top_hit_without_page_is_a_retrieval_error(make_retriever, chat_model) -> None:
    no_boxes = SearchResult(
        hits=[SearchHit(source_url="https://docs.example.com/annual-report.pdf")],
        text="Revenue grew 18%.",
    )
    executor = PlanExecutor(make_retriever(no_boxes), "bucket-7", llm=chat_model)

    with pytest.raises(RetrievalError, match="no page-level location"):
        executor.execute(Action(intent=Intent.FIND_FIG, query="revenue", does_follow_up=True))
    assert chat_model.calls == []


def test_find_pdf_top_hit_without_page_still_resolves(make_retriever) -> None:
    no_boxes = SearchResult(
        hits=[SearchHit(source_url="https://docs.example.com/annual-report.pdf")],
        text="",
    )
    executor = PlanExecutor(make_retriever(no_boxes), "bucket-7")

    result = executor.execute(Action(intent=Intent.FIND_PDF, query="annual report"))

    assert result.action.pdf == "https://docs.example.com/annual-report.pdf"
    assert result.action.page is None
