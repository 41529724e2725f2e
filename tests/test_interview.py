"""Tests for agents/interview: transcript pairing, prompt rendering, profile wiring."""

from __future__ import annotations

import json

import pytest

from agents.interview.agent import (
    CACHE_KEY_PREFIX,
    build_interview_request,
    feedback_profile,
    generate_feedback,
    pair_transcript,
)
from agents.interview.prompt import build_feedback_prompt, render_answer
from core.cache import EvaluationCache, MemoryStore
from core.fingerprint import fingerprint_request
from core.heuristics import analyze_answer, analyze_request
from core.invoker import Invocation
from core.pipeline import Evaluator


class _DummySettings:
    feedback_cache_ttl_seconds = 604800


class _DummyInvoker:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def invoke_with_usage(self, prompt: str, variant: str | None = None) -> Invocation:
        self.prompts.append(prompt)
        return Invocation(text=self.reply, attempts=1, model="test/model")


class TestPairTranscript:
    def test_pairs_questions_with_following_answers(self):
        messages = [
            {"role": "system", "content": "You are an interviewer."},
            {"role": "assistant", "content": "Tell me about yourself."},
            {"role": "user", "content": "I build APIs."},
            {"role": "user", "content": "Mostly in Go."},
            {"role": "assistant", "content": "Why Go?"},
            {"role": "user", "content": "Simplicity."},
        ]
        assert pair_transcript(messages) == [
            ("Tell me about yourself.", "I build APIs. Mostly in Go."),
            ("Why Go?", "Simplicity."),
        ]

    def test_unanswered_question_has_empty_answer(self):
        messages = [
            {"role": "assistant", "content": "Q1"},
            {"role": "user", "content": "A1"},
            {"role": "assistant", "content": "Q2"},
        ]
        assert pair_transcript(messages) == [("Q1", "A1"), ("Q2", "")]

    def test_consecutive_interviewer_turns_merge(self):
        messages = [
            {"role": "assistant", "content": "Hello!"},
            {"role": "assistant", "content": "How was your day?"},
            {"role": "user", "content": "Good."},
        ]
        assert pair_transcript(messages) == [("Hello! How was your day?", "Good.")]

    def test_candidate_turns_before_first_question_dropped(self):
        messages = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Q"}]
        assert pair_transcript(messages) == [("Q", "")]

    def test_empty_transcript(self):
        assert pair_transcript([]) == []


class TestBuildRequest:
    def test_from_mappings_and_tuples(self):
        request = build_interview_request(
            [{"question": "Q1", "answer": "A1"}, {"question": "Q2"}, ("Q3", None)],
            role="Frontend Engineer",
            interview_type="technical",
            tech_stack=["react", " ", "typescript"],
            duration_minutes=15,
            company="",
        )
        assert [(i.prompt, i.response) for i in request.items] == [("Q1", "A1"), ("Q2", ""), ("Q3", "")]
        assert request.tags == ("react", "typescript")
        assert request.category == "technical"
        assert request.company is None

    def test_no_questions_rejected(self):
        with pytest.raises(ValueError):
            build_interview_request([], role="Dev", interview_type="mixed")


class TestPrompt:
    def test_answer_block(self):
        block = render_answer(1, analyze_answer("Tell me about yourself", ""))
        assert "Question 1: Tell me about yourself" in block
        assert "Answer: [NO ANSWER PROVIDED]" in block
        assert "⚠️ TOO SHORT" in block
        assert "EMPTY/MINIMAL - CRITICAL ISSUE" in block

    def test_full_prompt_has_rubric_metrics_and_raw_answers(self):
        request = build_interview_request(
            [("What is a closure?", "A function plus its lexical scope.")],
            role="Frontend Engineer",
            interview_type="technical",
            tech_stack=["react", "node"],
            duration_minutes=1,
        )
        prompt = build_feedback_prompt(request, analyze_request(request))

        assert "Position: Frontend Engineer" in prompt
        assert "Tech Stack: node, react" in prompt
        assert "Company: Technical Assessment" in prompt
        assert "A function plus its lexical scope." in prompt
        assert "Interview Pace: RUSHED ⚠️" in prompt
        assert "cap all category scores at 35" in prompt
        assert "Technical Knowledge - node" in prompt
        assert "Return ONLY a single valid JSON object" in prompt
        assert "$" not in prompt.replace("$$", "")

    def test_unknown_duration(self):
        request = build_interview_request([("Q", "A")], role="Dev", interview_type="mixed")
        prompt = build_feedback_prompt(request, analyze_request(request))
        assert "Interview Duration: not recorded" in prompt
        assert "Tech Stack: General" in prompt

    def test_prompt_and_key_ignore_tag_order(self):
        requests = [
            build_interview_request(
                [("What is a closure?", "A function plus its lexical scope.")],
                role="Frontend Engineer",
                interview_type="technical",
                tech_stack=stack,
                duration_minutes=5,
            )
            for stack in (["react", "node"], [" node", "react "])
        ]
        prompts = [build_feedback_prompt(r, analyze_request(r)) for r in requests]

        assert requests[0].tags == requests[1].tags == ("node", "react")
        assert fingerprint_request(requests[0]) == fingerprint_request(requests[1])
        assert prompts[0] == prompts[1]


class TestGenerateFeedback:
    def test_profile(self):
        profile = feedback_profile(_DummySettings())
        assert profile.key_prefix == CACHE_KEY_PREFIX == "feedback-generation"
        assert profile.ttl_seconds == 604800
        assert profile.schema.score_field == "totalScore"

    def test_end_to_end_with_cache(self):
        reply = json.dumps(
            {
                "totalScore": 38,
                "categoryScores": [
                    {"name": "Communication Skills", "score": 30, "comment": "Brief."},
                    {"name": "Technical Knowledge - python", "score": 35, "comment": "Shallow."},
                ],
                "strengths": [],
                "areasForImprovement": ["Elaborate", "Give examples"],
                "finalAssessment": "Not ready for Backend Engineer interviews.",
            }
        )
        invoker = _DummyInvoker(f"```json\n{reply}\n```")
        evaluator = Evaluator(EvaluationCache(MemoryStore()), invoker)
        request = build_interview_request(
            [
                (
                    "Tell me about yourself",
                    "I am a backend engineer with 5 years building scalable APIs; for example, "
                    "I redesigned our payment service and reduced latency by 40 percent.",
                )
            ],
            role="Backend Engineer",
            interview_type="behavioral",
            tech_stack=["python"],
            duration_minutes=10,
        )

        result = generate_feedback(evaluator, request, settings=_DummySettings())
        again = generate_feedback(evaluator, request, settings=_DummySettings())

        assert result.total_score == 38
        assert result.answer_metrics[0].quality_score == 4
        assert result.answer_metrics[0].has_examples is True
        assert result.session_metrics.was_rushed is False
        assert again == result
        assert len(invoker.prompts) == 1
