# studyquiz/storage.py
import json
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .models import Quiz


def save_quiz(quiz: Quiz, folder: Path, meta: Optional[Dict] = None) -> Path:
    """Write quiz (camelCase JSON) plus meta to folder/quiz_<id>.json."""
    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)
    qid = uuid.uuid4().hex
    obj = {"meta": {"id": qid, **(meta or {})}, "quiz": quiz.to_dict()}
    out_path = folder / f"quiz_{qid}.json"
    out_path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
    return out_path


def list_saved_quizzes(folder: Path) -> List[Path]:
    """Saved quiz files, newest first."""
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return sorted(folder.glob("quiz_*.json"), key=lambda p: p.stat().st_mtime, reverse=True)


def load_quiz(path: Path) -> Tuple[Quiz, Dict]:
    obj = json.loads(Path(path).read_text(encoding="utf-8"))
    return Quiz.model_validate(obj["quiz"]), obj.get("meta", {})
