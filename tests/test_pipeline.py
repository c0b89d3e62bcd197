import datetime as dt
import zipfile
from io import BytesIO

import pytest
from openpyxl import Workbook

from training_core.ingest import IngestionError, MissingSheetError, TEXT_EXTENSIONS, load_sheets
from training_core.pipeline import process_file, process_sheets, run_pipeline


def _xlsx(sheets):
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


COURSE_ROWS = [
    ["Reporte de avance", None, None, None, None, None],
    ["Usuario", "Curso", "% de Progreso del Curso", "Curso completado", "Certificado obtenido", "Fecha de Completitud"],
    ["ana", "Excel", 1, "Si", "Si", dt.datetime(2024, 3, 10)],
    ["beto", "Excel", 0.5, "No", "No", None],
]


def test_courses_only_workbook():
    m = run_pipeline("reporte.xlsx", _xlsx({"Curso": COURSE_ROWS}))
    assert m.total_employees == 2
    assert m.completion_rate == pytest.approx(75.0)
    assert m.certificates_issued == 1
    assert [(x.month, x.completed) for x in m.monthly_progress] == [("mar", 1)]
    assert m.evaluation_metrics is None
    assert m.question_metrics is None
    assert m.survey_metrics is None
    assert m.multiple_choice_metrics is None


def test_full_workbook():
    data = _xlsx({
        "Curso": COURSE_ROWS,
        "Resultados Ev. final": [
            ["Usuario", "Email", "Cantidad de intentos rendidos", "Puntaje - Mejor intento", "Estado evaluación - Mejor intento"],
            ["ana", "ana@x.com", 1, 60, "Reprobado"],
            ["ana", "ANA@x.com", 2, 90, "Aprobado"],
        ],
        "Preguntas y respuestas": [
            ["Usuario", "Pregunta", "Estado"],
            ["ana", "¿Qué es una celda?", "Incorrecta"],
            ["beto", "¿Qué es una celda?", "Correcta"],
        ],
        "Encuestas Abiertas": [
            ["Email", "Pregunta", "Respuesta"],
            ["ana@x.com", "¿Qué mejorarías?", "Más ejemplos prácticos"],
        ],
        "Encuestas Multiples": [
            ["Email", "Pregunta", "Elección"],
            ["ana@x.com", "¿Lo recomendarías?", "Sí"],
        ],
    })
    processed = process_file("reporte.xlsx", data)
    assert len(processed.training) == 2
    assert len(processed.evaluations) == 2
    assert processed.sheet_map["evaluations"] == "Resultados Ev. final"

    m = run_pipeline("reporte.xlsx", data)
    assert m.evaluation_metrics.total_evaluations == 1
    assert m.evaluation_metrics.top_performers[0].score == 90
    assert m.question_metrics.hardest_questions[0].failure_rate == pytest.approx(50.0)
    assert m.survey_metrics.top_words[0].text == "ejemplos"
    assert m.multiple_choice_metrics.questions_analysis[0].distribution[0].name == "Sí"


def test_first_sheet_used_when_no_curso_sheet():
    m = run_pipeline("x.xlsx", _xlsx({"Hoja1": COURSE_ROWS}))
    assert m.total_employees == 2


def test_csv_upload():
    text = "Reporte\nUsuario;Curso;% de Progreso del Curso;Horas de Reproducción\nana;Excel;80%;1h 45m\nbeto;Word;40%;90\n"
    m = run_pipeline("reporte.csv", text.encode("utf-8"))
    assert m.total_employees == 2
    assert m.completion_rate == pytest.approx(60.0)
    assert m.average_training_hours == pytest.approx((1.75 + 90) / 2)


def test_csv_quoted_delimiter_and_ragged_rows():
    text = 'Título del reporte\nUsuario;Curso\n"Pérez; Ana";Excel\n;;\n'
    sheets = load_sheets("reporte.csv", text.encode("utf-8"))
    df_raw = sheets["CSV"]
    assert df_raw.shape == (3, 3)
    assert df_raw.iloc[2, 1] == "Pérez; Ana"
    assert df_raw["_origin_row"].tolist() == [1, 2, 3]

    m = run_pipeline("reporte.csv", text.encode("utf-8"))
    assert m.total_employees == 1
    assert m.top_courses[0].name == "Excel"


@pytest.mark.parametrize("ext", TEXT_EXTENSIONS)
def test_text_extensions_read_as_csv(ext):
    sep = "\t" if ext == ".tsv" else ";"
    text = sep.join(["Usuario", "Curso"]) + "\n" + sep.join(["ana", "Excel"]) + "\n"
    sheets = load_sheets("reporte" + ext, text.encode("utf-8"))
    assert list(sheets) == ["CSV"]
    assert run_pipeline("reporte" + ext, text.encode("utf-8")).total_employees == 1


def test_merged_cells_are_unrolled():
    wb = Workbook()
    ws = wb.active
    ws.title = "Curso"
    ws.append(["Usuario", "Curso"])
    ws.append(["ana", "Excel"])
    ws.append(["beto", None])
    ws.merge_cells("B2:B3")
    bio = BytesIO()
    wb.save(bio)
    sheets = load_sheets("x.xlsx", bio.getvalue())
    assert sheets["Curso"].iloc[2, 2] == "Excel"


def test_empty_file_is_ingestion_error():
    with pytest.raises(IngestionError):
        run_pipeline("x.xlsx", b"")


def test_unreadable_workbook_is_ingestion_error():
    with pytest.raises(IngestionError):
        run_pipeline("x.xlsx", b"esto no es un libro")


def test_corrupt_xml_inside_zip_is_ingestion_error():
    bio = BytesIO()
    with zipfile.ZipFile(bio, "w") as zf:
        zf.writestr("[Content_Types].xml", b"<Types")
        zf.writestr("xl/workbook.xml", b"<workbook><sheets><sheet")
    with pytest.raises(IngestionError):
        run_pipeline("x.xlsx", bio.getvalue())


def test_blank_choice_cell_counts_as_no_answer():
    data = _xlsx({
        "Curso": COURSE_ROWS,
        "Encuestas Multiples": [
            ["Email", "Pregunta", "Elección"],
            ["a@x.com", "¿Lo recomendarías?", "Sí"],
            ["b@x.com", "¿Lo recomendarías?", " "],
            ["c@x.com", "¿Lo recomendarías?", None],
        ],
    })
    qa = run_pipeline("reporte.xlsx", data).multiple_choice_metrics.questions_analysis[0]
    assert [(c.name, c.value) for c in qa.distribution] == [
        ("Sí", 1), ("Sin respuesta", 1), ("Sin elección", 1),
    ]


def test_no_sheets_is_missing_sheet_error():
    with pytest.raises(MissingSheetError):
        process_sheets({})
