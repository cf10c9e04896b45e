"""Tests for keyboard routing onto pending surfaces."""

from __future__ import annotations

import pytest

from agentwizard.ui.keys import Key, KeyRouter
from agentwizard.ui.types import (
    CANCEL,
    ApprovalAnswer,
    ClarifyingQuestion,
    ClarifyingQuestionsSurface,
    PersistentInputSurface,
    PlanApprovalSurface,
    PlanDecision,
    QuestionOption,
    SelectOption,
    SelectSurface,
    TextSurface,
    ToolApprovalSurface,
)


@pytest.fixture
def router(store) -> KeyRouter:
    return KeyRouter(store)


def feed(router: KeyRouter, *keys: Key | str) -> None:
    for key in keys:
        if isinstance(key, Key):
            router.feed(key)
        else:
            router.feed_text(key)


def question(text: str, *labels: str, multi: bool = False) -> ClarifyingQuestion:
    return ClarifyingQuestion(
        question=text,
        header=text.rstrip("?"),
        options=tuple(QuestionOption(label) for label in labels),
        multi_select=multi,
    )


class TestPersistentInput:
    """Tests for the input line shown while the agent runs."""

    def test_submit(self, store, router):
        """Test typed text is submitted on Enter and the buffer cleared."""
        submitted = []
        store.start_persistent_input(PersistentInputSurface(on_submit=submitted.append, on_interrupt=lambda: None))

        feed(router, "use ", "uv", Key.BACKSPACE, "v", Key.ENTER)

        assert submitted == ["use uv"]
        assert router.view.buffer == ""

    def test_blank_not_submitted(self, store, router):
        """Test Enter on an empty line does nothing."""
        submitted = []
        store.start_persistent_input(PersistentInputSurface(on_submit=submitted.append, on_interrupt=lambda: None))
        feed(router, "  ", Key.ENTER)
        assert submitted == []

    def test_escape_interrupts(self, store, router):
        """Test Esc calls the interrupt callback."""
        interrupted = []
        store.start_persistent_input(
            PersistentInputSurface(on_submit=lambda m: None, on_interrupt=lambda: interrupted.append(True))
        )
        router.feed(Key.ESCAPE)
        assert interrupted == [True]


class TestSimpleSurfaces:
    """Tests for text and select surfaces."""

    async def test_text_enter(self, store, router):
        """Test Enter resolves with the typed text."""
        future = store.show(TextSurface(message="Name?", default_value="A"))
        feed(router, "da", Key.ENTER)
        assert future.result() == "Ada"

    async def test_text_escape(self, store, router):
        """Test Esc cancels a text surface."""
        future = store.show(TextSurface(message="Name?"))
        router.feed(Key.ESCAPE)
        assert future.result() is CANCEL

    async def test_select_moves_and_clamps(self, store, router):
        """Test arrows move the highlight within the options."""
        options = (SelectOption("a", "A"), SelectOption("b", "B"))
        future = store.show(SelectSurface(message="Pick", options=options))
        feed(router, Key.DOWN, Key.DOWN, Key.DOWN, Key.ENTER)
        assert future.result() == "b"

    async def test_view_resets_for_new_surface(self, store, router):
        """Test view state does not leak from one surface to the next."""
        store.show(TextSurface(message="First?"))
        router.feed_text("abc")
        store.resolve_pending("abc")

        store.show(TextSurface(message="Second?"))
        assert router.view.buffer == ""


class TestToolApproval:
    """Tests for the allow/deny surface."""

    @pytest.fixture
    async def future(self, store):
        return store.show(ToolApprovalSurface(tool_name="Bash", input={"command": "rm -rf build"}))

    async def test_allow(self, router, future):
        """Test Enter on the first option allows."""
        router.feed(Key.ENTER)
        assert future.result() == ApprovalAnswer(allowed=True)

    async def test_deny(self, router, future):
        """Test the second option denies."""
        feed(router, Key.DOWN, Key.ENTER)
        assert future.result() == ApprovalAnswer(allowed=False)

    async def test_deny_with_feedback(self, router, future):
        """Test the third option collects feedback before denying."""
        feed(router, Key.DOWN, Key.DOWN, Key.ENTER)
        assert not future.done()
        assert router.view.typing

        feed(router, "use trash", Key.ENTER)
        assert future.result() == ApprovalAnswer(allowed=False, feedback="use trash")

    async def test_escape_denies(self, router, future):
        """Test Esc denies."""
        router.feed(Key.ESCAPE)
        assert future.result() == ApprovalAnswer(allowed=False)


class TestPlanApproval:
    """Tests for the plan surface."""

    async def test_accept(self, store, router):
        """Test Enter accepts the plan."""
        future = store.show(PlanApprovalSurface(plan="1. Do it"))
        router.feed(Key.ENTER)
        assert future.result() == PlanDecision(approved=True)

    async def test_feedback(self, store, router):
        """Test rejecting with feedback."""
        future = store.show(PlanApprovalSurface(plan="1. Do it"))
        feed(router, Key.DOWN, Key.ENTER, Key.ENTER)
        assert not future.done()

        feed(router, "smaller steps", Key.ENTER)
        assert future.result() == PlanDecision(approved=False, feedback="smaller steps")


class TestClarifyingQuestions:
    """Tests for the multi-step questions surface."""

    async def test_answer_and_submit(self, store, router):
        """Test answering each question then submitting from review."""
        surface = ClarifyingQuestionsSurface(
            questions=(question("Framework?", "Django", "Flask"), question("Tests?", "Yes", "No"))
        )
        future = store.show(surface)

        feed(router, Key.DOWN, Key.ENTER)
        feed(router, Key.ENTER)
        assert router.view.reviewing
        router.feed(Key.ENTER)

        result = future.result()
        assert not result.declined
        assert result.answers == {"Framework?": "Flask", "Tests?": "Yes"}

    async def test_escape_goes_back(self, store, router):
        """Test Esc on a later question returns to the previous one."""
        surface = ClarifyingQuestionsSurface(questions=(question("A?", "1"), question("B?", "2")))
        future = store.show(surface)

        feed(router, Key.ENTER, Key.ESCAPE)
        assert router.view.question == 0
        assert not future.done()

    async def test_escape_on_first_declines(self, store, router):
        """Test Esc on the first question declines them all."""
        surface = ClarifyingQuestionsSurface(questions=(question("A?", "1"),))
        future = store.show(surface)
        router.feed(Key.ESCAPE)
        assert future.result().declined

    async def test_custom_answer(self, store, router):
        """Test the free-text row."""
        future = store.show(ClarifyingQuestionsSurface(questions=(question("Port?", "8000"),)))

        feed(router, Key.DOWN, Key.ENTER, "9000", Key.ENTER, Key.ENTER)

        assert future.result().answers == {"Port?": "9000"}

    async def test_multi_select(self, store, router):
        """Test toggling options and submitting a multi-select question."""
        future = store.show(
            ClarifyingQuestionsSurface(questions=(question("Extras?", "Auth", "Admin", "API", multi=True),))
        )

        # Toggle Auth and API, then move to Submit
        feed(router, Key.ENTER, Key.DOWN, Key.DOWN, Key.ENTER)
        feed(router, Key.DOWN, Key.DOWN, Key.ENTER)
        assert router.view.reviewing
        router.feed(Key.ENTER)

        assert future.result().answers == {"Extras?": "Auth, API"}

    async def test_cancel_from_review(self, store, router):
        """Test choosing Cancel on the review step declines."""
        future = store.show(ClarifyingQuestionsSurface(questions=(question("A?", "1"),)))
        feed(router, Key.ENTER, Key.DOWN, Key.ENTER)
        assert future.result().declined


class TestCtrlC:
    """Tests for the global hard stop."""

    async def test_cancels_prompt_and_interrupts(self, store, router):
        """Test Ctrl+C denies the live approval and fires the interrupt handle."""
        fired = []
        store.set_agent_state(interrupt_handle=lambda: fired.append(True))
        future = store.show(ToolApprovalSurface(tool_name="Bash", input={}))

        router.feed(Key.CTRL_C)

        assert future.result() == ApprovalAnswer(allowed=False)
        assert fired == [True]

    def test_without_agent(self, store, router):
        """Test Ctrl+C with nothing running does nothing."""
        router.feed(Key.CTRL_C)
        assert store.pending is None
