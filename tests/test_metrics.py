import pytest

from training_core.metrics import (
    STOP_WORDS_ES,
    calculate_metrics,
    compute_evaluation_metrics,
    compute_multiple_choice_metrics,
    compute_question_metrics,
    compute_survey_metrics,
    dedupe_evaluations,
    tokenize,
)
from training_core.records import (
    EvaluationRecord, MultipleChoiceRecord, QuestionRecord, SurveyRecord, TrainingRecord,
    STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_NOT_STARTED,
)


def training(name="ana", dept="General", course="Excel", status=STATUS_NOT_STARTED, completed="No",
             cert="No", score=0.0, progress=0.0, assigned="", done=None, hours=0.0):
    return TrainingRecord(
        id=name, employee_name=name, department=dept, course_name=course, status=status,
        course_completed_raw=completed, certificate_obtained=cert, score=score, progress=progress,
        date_assigned=assigned, completion_date=done, reproduction_hours=hours,
    )


def evaluation(name="ana", email="ana@x.com", score=0.0, attempts=1, status="", correct=0, incorrect=0):
    return EvaluationRecord(
        user_name=name, email=email, attempts=attempts, first_attempt_date="", last_attempt_date="",
        correct_answers=correct, incorrect_answers=incorrect, total_questions=correct + incorrect,
        score=score, status=status, duration_str="", course_name="Excel",
    )


def question(text, status, course="Excel"):
    return QuestionRecord(user_name="u", email="u@x.com", question=text, user_answer="", status=status,
                          course_name=course)


def survey(answer, email="a@x.com", question_text="¿Qué mejorarías?", course="Excel"):
    return SurveyRecord(email=email, course_name=course, survey_id="1", question_id="1",
                        question=question_text, answer=answer)


def choice(label, email="a@x.com", question_text="¿Recomendarías el curso?"):
    return MultipleChoiceRecord(email=email, course_name="Excel", survey_id="1", question_id="1",
                                question=question_text, choice=label)


def test_scenario_single_fractional_record():
    m = calculate_metrics([training(progress=0.5, cert="Si", completed="No", status=STATUS_IN_PROGRESS)])
    assert m.completion_rate == pytest.approx(50.0)
    assert m.certificates_issued == 1
    assert [(s.name, s.value) for s in m.completion_distribution] == [("No Completado", 1)]
    assert [(s.name, s.value) for s in m.certificate_distribution] == [("Con Certificado", 1)]


def test_progress_scale_is_global():
    fractional = calculate_metrics([training(progress=0.2), training(name="b", progress=1.0)])
    assert fractional.completion_rate == pytest.approx(60.0)

    # un valor > 1 hace que toda la colección se lea como 0-100
    percent = calculate_metrics([training(progress=0.5), training(name="b", progress=50)])
    assert percent.completion_rate == pytest.approx(25.25)


def test_completion_rate_bounds_and_all_zero():
    m = calculate_metrics([training(progress=0), training(name="b", progress=0)])
    assert m.completion_rate == 0.0
    assert 0 <= calculate_metrics([training(progress=100)]).completion_rate <= 100


def test_distributions_sum_to_total():
    records = [
        training(name="a", completed="Si", cert="Si"),
        training(name="b", completed="completado", cert="No"),
        training(name="c", completed="No", cert="yes"),
    ]
    m = calculate_metrics(records)
    assert sum(s.value for s in m.completion_distribution) == 3
    assert sum(s.value for s in m.certificate_distribution) == 3
    assert all(s.value > 0 for s in m.completion_distribution + m.certificate_distribution)


def test_employee_count_uses_names():
    m = calculate_metrics([training(name="ana"), training(name="ana", course="Word"), training(name="beto")])
    assert m.total_employees == 2


def test_average_hours():
    m = calculate_metrics([training(hours=1.75), training(name="b", hours=0.25)])
    assert m.average_training_hours == pytest.approx(1.0)


def test_department_performance():
    records = [
        training(name="a", dept="Chile", progress=100, score=80, status=STATUS_COMPLETED, completed="Si"),
        training(name="b", dept="Chile", progress=0, score=0),
        training(name="c", dept="Perú", progress=100, score=0, status=STATUS_COMPLETED, completed="Si"),
    ]
    m = calculate_metrics(records)
    assert [d.name for d in m.department_performance] == ["Perú", "Chile"]
    peru, chile = m.department_performance
    assert peru.completion_rate == pytest.approx(100.0)
    assert peru.avg_score == 0.0
    assert chile.completion_rate == pytest.approx(50.0)
    # solo cuenta el registro completado / con puntaje
    assert chile.avg_score == pytest.approx(80.0)


def test_top_courses_and_primary_course():
    names = ["A"] * 3 + ["B"] * 1 + ["C"] * 2 + ["D", "E", "F", "G"]
    m = calculate_metrics([training(name=str(i), course=c) for i, c in enumerate(names)])
    assert [(c.name, c.students) for c in m.top_courses] == [("A", 3), ("C", 2), ("B", 1), ("D", 1), ("E", 1)]
    assert m.primary_course_name == "A"


def test_monthly_progress_first_seen_order():
    records = [
        training(name="a", status=STATUS_COMPLETED, done="2024-03-10"),
        training(name="b", status=STATUS_COMPLETED, assigned="2024-01-05"),
        training(name="c", status=STATUS_COMPLETED, done="2024-03-22"),
        training(name="d", status=STATUS_COMPLETED, done="fecha rota"),
        training(name="e", status=STATUS_IN_PROGRESS, done="2024-02-01"),
    ]
    m = calculate_metrics(records)
    assert [(x.month, x.completed) for x in m.monthly_progress] == [("mar", 2), ("ene", 1)]


def test_monthly_progress_skips_partial_dates():
    records = [
        training(name="a", status=STATUS_COMPLETED, done="2024"),
        training(name="b", status=STATUS_COMPLETED, done="15"),
        training(name="c", status=STATUS_COMPLETED, done="10/03/2024"),
    ]
    m = calculate_metrics(records)
    assert [(x.month, x.completed) for x in m.monthly_progress] == [("mar", 1)]


def test_empty_training_collection():
    m = calculate_metrics([])
    assert m.total_employees == 0
    assert m.completion_rate == 0.0
    assert m.average_training_hours == 0.0
    assert m.completion_distribution == ()
    assert m.department_performance == ()
    assert m.primary_course_name == "General"


def test_optional_groups_absent_when_empty():
    m = calculate_metrics([training()])
    assert m.evaluation_metrics is None
    assert m.question_metrics is None
    assert m.survey_metrics is None
    assert m.multiple_choice_metrics is None


def test_optional_groups_are_independent():
    m = calculate_metrics([training()], surveys=[survey("Contenido muy práctico")])
    assert m.survey_metrics is not None
    assert m.evaluation_metrics is None
    assert m.multiple_choice_metrics is None


def test_idempotent():
    args = (
        [training(progress=0.4, cert="Si"), training(name="b", progress=0.9, dept="Chile")],
        [evaluation(score=60), evaluation(score=90, attempts=3)],
        [question("P1", "Incorrecta"), question("P1", "Correcta")],
        [survey("Ejemplos prácticos útiles")],
        [choice("Sí"), choice("No", email="b@x.com")],
    )
    assert calculate_metrics(*args) == calculate_metrics(*args)
    assert calculate_metrics(*args).to_dict() == calculate_metrics(*args).to_dict()


# ---- evaluaciones ----

def test_scenario_duplicate_email_keeps_best_score():
    ev = compute_evaluation_metrics([
        evaluation(score=60, attempts=1),
        evaluation(email=" ANA@x.com", score=90, attempts=3),
    ])
    assert ev.total_evaluations == 1
    assert [p.score for p in ev.top_performers] == [90]
    assert ev.avg_attempts == pytest.approx(3.0)


def test_dedupe_keeps_max_and_first_position():
    records = [
        evaluation(name="a", email="a@x.com", score=50),
        evaluation(name="b", email="", score=70),
        evaluation(name="a2", email="A@X.COM", score=95),
        evaluation(name="B ", email="", score=10),
    ]
    kept = dedupe_evaluations(records)
    assert len(kept) <= len(records)
    assert [k.score for k in kept] == [95, 70]


def test_dedupe_unique_keys_keeps_all():
    records = [evaluation(email=f"{i}@x.com", score=i) for i in range(4)]
    assert len(dedupe_evaluations(records)) == 4


def test_evaluation_aggregates():
    ev = compute_evaluation_metrics([
        evaluation(email="a", score=65, status="Aprobado", attempts=1, correct=6, incorrect=4),
        evaluation(email="b", score=72, status="", attempts=2, correct=7, incorrect=3),
        evaluation(email="c", score=40, status="Reprobado", attempts=6, correct=4, incorrect=6),
        evaluation(email="d", score=72, status="", attempts=5, correct=7, incorrect=3),
    ])
    assert ev.pass_rate == pytest.approx(75.0)
    assert (ev.global_accuracy.correct, ev.global_accuracy.incorrect) == (24, 16)
    assert [(b.attempts, b.count) for b in ev.attempts_distribution] == [("1", 1), ("2", 1), ("5+", 2)]
    assert [(s.name, s.value) for s in ev.pass_distribution] == [("Aprobados", 3), ("Reprobados", 1)]
    # empate en 72: se respeta el orden original
    assert [p.score for p in ev.top_performers] == [72, 72, 65, 40]
    assert [p.name for p in ev.top_performers][:2] == ["ana", "ana"]


def test_pass_distribution_omits_zero_bucket():
    ev = compute_evaluation_metrics([evaluation(score=100)])
    assert [(s.name, s.value) for s in ev.pass_distribution] == [("Aprobados", 1)]


# ---- preguntas ----

def test_scenario_failure_rate():
    qm = compute_question_metrics(
        [question("P1", "Incorrecta")] * 3
        + [question("P1 ", "Correcta")]
        + [question("P2", "Correcta")] * 2
    )
    assert qm.total_questions_answered == 6
    assert len(qm.hardest_questions) == 1
    h = qm.hardest_questions[0]
    assert h.question == "P1"
    assert h.failure_rate == pytest.approx(75.0)
    assert (h.incorrect_count, h.total_attempts) == (3, 4)


def test_hardest_questions_sorted_and_capped():
    records = []
    for i in range(12):
        records += [question(f"Q{i}", "Incorrecta")] + [question(f"Q{i}", "Correcta")] * i
    qm = compute_question_metrics(records)
    rates = [h.failure_rate for h in qm.hardest_questions]
    assert len(rates) == 10
    assert rates == sorted(rates, reverse=True)
    assert all(h.incorrect_count >= 1 for h in qm.hardest_questions)
    assert qm.hardest_questions[0].question == "Q0"


# ---- encuestas ----

def test_tokenize_filters_short_and_stop_words():
    tokens = tokenize("El curso fue MUY bueno, pero faltaron ejemplos (prácticos)!")
    assert tokens == ["faltaron", "ejemplos", "prácticos"]
    assert not any(t in STOP_WORDS_ES or len(t) <= 2 for t in tokens)


def test_survey_metrics():
    sm = compute_survey_metrics([
        survey("Ejemplos prácticos", email="a@x.com", course="Excel"),
        survey("Más ejemplos", email="A@x.com ", course="Word"),
        survey("", email="b@x.com", question_text="¿Algo más?", course="Word"),
        survey("Ejemplos reales", email="c@x.com", course="Word"),
    ])
    assert sm.total_responses == 4
    assert sm.unique_respondents == 3
    assert [(c.name, c.count) for c in sm.responses_by_course] == [("Word", 3), ("Excel", 1)]
    # la pregunta sin respuestas no aparece
    assert [g.question for g in sm.grouped_questions] == ["¿Qué mejorarías?"]
    assert sm.grouped_questions[0].answers == ("Ejemplos prácticos", "Más ejemplos", "Ejemplos reales")
    assert sm.top_words[0].text == "ejemplos"
    assert sm.top_words[0].value == 3
    total_tokens = sum(len(tokenize(s)) for s in ["Ejemplos prácticos", "Más ejemplos", "Ejemplos reales"])
    assert sum(w.value for w in sm.top_words) <= total_tokens


def test_top_words_capped_at_fifty():
    text = " ".join(f"palabra{i:03d}" for i in range(80))
    sm = compute_survey_metrics([survey(text)])
    assert len(sm.top_words) == 50


# ---- opción múltiple ----

def test_multiple_choice_metrics():
    mm = compute_multiple_choice_metrics([
        choice("No", email="a@x.com"),
        choice("Sí", email="b@x.com"),
        choice("Sí", email="c@x.com"),
        choice("  ", email="c@x.com", question_text="¿Recomendarías el curso? "),
    ])
    assert mm.total_responses == 4
    assert mm.unique_respondents == 3
    assert len(mm.questions_analysis) == 1
    qa = mm.questions_analysis[0]
    assert qa.total_answers == 4
    assert [(c.name, c.value) for c in qa.distribution] == [("Sí", 2), ("No", 1), ("Sin respuesta", 1)]
