from __future__ import annotations

import random
from collections import Counter

from services.quiz_bank import DEFAULT_QUIZ_QUESTIONS, grade_answers, question_by_id, shuffle_questions


def _all_correct():
    return {q.id: q.correctAnswer for q in DEFAULT_QUIZ_QUESTIONS}


def test_bank_has_ten_questions_with_one_false():
    assert [q.id for q in DEFAULT_QUIZ_QUESTIONS] == list(range(1, 11))
    assert [q.id for q in DEFAULT_QUIZ_QUESTIONS if not q.correctAnswer] == [7]


def test_public_dict_hides_answer():
    assert set(DEFAULT_QUIZ_QUESTIONS[0].public_dict()) == {"id", "questionText"}


def test_question_by_id_accepts_strings():
    assert question_by_id("7").correctAnswer is False
    assert question_by_id("x") is None
    assert question_by_id(99) is None


def test_shuffle_is_a_permutation_and_leaves_input_alone():
    original = list(DEFAULT_QUIZ_QUESTIONS)
    out = shuffle_questions(original, random.Random(7))
    assert sorted(q.id for q in out) == list(range(1, 11))
    assert original == list(DEFAULT_QUIZ_QUESTIONS)


def test_shuffle_handles_tiny_inputs():
    assert shuffle_questions([]) == []
    assert shuffle_questions(DEFAULT_QUIZ_QUESTIONS[:1]) == [DEFAULT_QUIZ_QUESTIONS[0]]


def test_shuffle_is_roughly_uniform():
    rng = random.Random(1234)
    items = DEFAULT_QUIZ_QUESTIONS[:3]
    runs = 6000
    counts = Counter(tuple(q.id for q in shuffle_questions(items, rng)) for _ in range(runs))
    assert len(counts) == 6
    expected = runs / 6
    for n in counts.values():
        assert abs(n - expected) < expected * 0.15


def test_perfect_score_passes():
    graded = grade_answers(DEFAULT_QUIZ_QUESTIONS, _all_correct())
    assert graded["score"] == 10 and graded["total"] == 10
    assert graded["passed"] is True


def test_nine_of_ten_fails():
    answers = _all_correct()
    answers[7] = True
    graded = grade_answers(DEFAULT_QUIZ_QUESTIONS, answers)
    assert graded["score"] == 9
    assert graded["passed"] is False
    wrong = [r for r in graded["results"] if not r["correct"]]
    assert [r["id"] for r in wrong] == [7]
    assert wrong[0]["explanation"].startswith("You MUST inspect")


def test_string_keys_and_missing_answers():
    answers = {str(k): v for k, v in _all_correct().items()}
    del answers["3"]
    graded = grade_answers(DEFAULT_QUIZ_QUESTIONS, answers)
    assert graded["score"] == 9
    assert graded["results"][2]["answer"] is None
    assert not graded["passed"]


def test_non_boolean_answers_are_wrong():
    answers = _all_correct()
    answers[1] = "true"
    assert grade_answers(DEFAULT_QUIZ_QUESTIONS, answers)["score"] == 9


def test_empty_bank_never_passes():
    assert grade_answers([], {})["passed"] is False


def test_repeated_shuffles_differ():
    orders = {tuple(q.id for q in shuffle_questions(DEFAULT_QUIZ_QUESTIONS)) for _ in range(5)}
    assert len(orders) > 1
