# app.py
import logging
import os
import tempfile
from pathlib import Path

import streamlit as st

from studyquiz.extract_text import SUPPORTED_EXTENSIONS
from studyquiz.grader import grade_question, grade_quiz
from studyquiz.models import QuestionType
from studyquiz.service import DocumentError, process_document
from studyquiz.storage import list_saved_quizzes, load_quiz, save_quiz

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Saved quizzes folder
QUIZ_FOLDER = Path(os.environ.get("QUIZ_FOLDER", "quizzes"))

st.set_page_config(page_title="Study Quiz Builder", layout="wide")
st.title("Study Quiz Builder")

tabs = st.tabs(["Upload", "Take Quiz", "Saved Quizzes"])


def _start_quiz(quiz, defaults=None, source=None):
    st.session_state['quiz'] = quiz
    st.session_state['defaults'] = defaults or {}
    st.session_state['source_file'] = source
    st.session_state.pop('report', None)


##### UPLOAD TAB #####
with tabs[0]:
    st.header("Upload a study document")
    uploaded = st.file_uploader(
        "Upload PDF / DOCX / DOC / PPTX / TXT / MD",
        type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS],
    )
    use_gemini = st.toggle("Fill missing answers and explanations with Gemini", value=False)
    tutor_mode = st.toggle("Tutor mode (show explanations as you answer)", value=True)

    if uploaded and st.button("Build Quiz"):
        suffix = Path(uploaded.name).suffix
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            tmp.write(uploaded.getvalue())
            tmp_path = tmp.name
        try:
            with st.spinner("Extracting text and parsing questions..."):
                result = process_document(tmp_path, uploaded.name, use_gemini=use_gemini, tutor_mode=tutor_mode)
        except DocumentError as exc:
            st.error(str(exc))
            result = None
        except ValueError as exc:
            # unsupported or unreadable file
            st.error(str(exc))
            result = None
        finally:
            os.remove(tmp_path)

        if result:
            quiz = result["quiz"]
            _start_quiz(quiz, result["defaults"], uploaded.name)
            parsing = result["processing"]["parsing"]
            st.success(f"Built \"{quiz.title}\" with {parsing['totalQuestions']} question(s).")
            st.write(
                f"Answers mapped: {parsing['answersMapped']}, "
                f"explanations mapped: {parsing['explanationsMapped']}, "
                f"answer section detected: {parsing['detectedAnswerSection']}"
            )
            gemini = result["processing"]["gemini"]
            if gemini["attempted"] or use_gemini:
                st.info(f"Gemini: {gemini['reason'] or 'completed'} (updated {gemini['updatedQuestions']} question(s))")

    if st.session_state.get('quiz') and st.button("Save Quiz"):
        out_path = save_quiz(st.session_state['quiz'], QUIZ_FOLDER, {"source_file": st.session_state.get('source_file')})
        st.success(f"Quiz saved: {out_path.name}")

##### TAKE QUIZ TAB #####
with tabs[1]:
    quiz = st.session_state.get('quiz')
    if not quiz:
        st.info("Upload a document or load a saved quiz first.")
    else:
        defaults = st.session_state.get('defaults', {})
        tutor = defaults.get('tutorMode', True)
        st.header(quiz.title)
        answers = {}
        for question in quiz.questions:
            st.markdown(f"**{question.number}. {question.stem}**")
            for source in question.images:
                st.image(source)
            labels = question.option_labels()
            fmt = lambda label, q=question: f"{label}. {q.option(label).text}"
            if question.type == QuestionType.MULTI_SELECT:
                chosen = st.multiselect("Select all that apply", labels, format_func=fmt, key=f"ms_{question.id}")
            else:
                choice = st.radio("Your answer", labels, index=None, format_func=fmt, key=f"r_{question.id}")
                chosen = [choice] if choice else []
            answers[question.id] = chosen

            if tutor and chosen:
                verdict = grade_question(question, chosen)
                if verdict is None:
                    st.caption("No answer key for this question.")
                elif verdict:
                    st.success("Correct")
                else:
                    st.error(f"Incorrect. Answer: {', '.join(question.correct_options)}")
                with st.expander("Explanations"):
                    for option in question.options:
                        st.write(f"**{option.label}**: {question.explanations.get(option.label, '')}")
            st.write("")

        if st.button("Submit & Grade"):
            st.session_state['report'] = grade_quiz(quiz, answers)

        report = st.session_state.get('report')
        if report:
            st.success(f"Score: {report['correct']}/{report['total']} ({report['scorePercent']}%)")
            st.table([
                {"Question": row["number"], "Selected": ", ".join(row["selected"]),
                 "Answer": ", ".join(row["correctOptions"]), "Status": row["status"]}
                for row in report["rows"]
            ])

##### SAVED QUIZZES TAB #####
with tabs[2]:
    st.header("Saved Quizzes")
    files = list_saved_quizzes(QUIZ_FOLDER)
    if not files:
        st.info("No quizzes saved yet.")
    else:
        for quiz_file in files:
            col1, col2 = st.columns([1, 4])
            with col1:
                if st.button("Load", key=f"load_{quiz_file.stem}"):
                    saved, meta = load_quiz(quiz_file)
                    _start_quiz(saved, {"tutorMode": True}, meta.get("source_file"))
                    st.success(f"Loaded \"{saved.title}\". Open the Take Quiz tab.")
            with col2:
                st.download_button(
                    label=f"Download {quiz_file.name}",
                    data=quiz_file.read_text(encoding="utf-8"),
                    file_name=quiz_file.name,
                    key=f"dl_{quiz_file.stem}",
                )
