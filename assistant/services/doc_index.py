"""
Service: doc_index.py
Rôle:
- Indexer la documentation du jeu pour l'assistant :
  * document principal (README) → table de sections {nom_en_minuscules: corps},
  * documents par mini-jeu (topic) → fiche {objective, controls, tips[], mechanics[]},
  * index de mots-clés {catégorie: [sections]} reconstruit à chaque chargement.

Formats:
- Principal : une ligne commençant par `#` ouvre une section (texte du titre, sans `#`,
  nettoyé, en minuscules); le corps court jusqu'au titre suivant.
- Topic : seuls les titres `##` ouvrent une catégorie, reconnue par sous-chaîne
  (objetivo/objective, control, consejo/tip, mecánica/mechanic, accents ignorés).
  Sous tips/mechanics, seules les puces `-` sont retenues.

Robustesse:
- Une source absente/illisible est journalisée (warning) et n'efface rien :
  l'index continue de servir le contenu précédent (ou reste vide).
"""
from __future__ import annotations

import logging
import unicodedata
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .io_utils import READER, FileReader, PathLike

logger = logging.getLogger(__name__)

HEADER_MARKER = "#"
TOPIC_HEADER_MARKER = "##"
BULLET_MARKER = "-"

# Catégories de l'index → sous-chaînes recherchées dans les noms de section
KEYWORD_CATEGORIES: Dict[str, List[str]] = {
    "tutorial": ["tutorial", "introduccion", "introduction", "primeros pasos", "getting started"],
    "controls": ["control", "teclado", "keyboard"],
    "navigation": ["navegacion", "navigation", "mapa", "map"],
    "tips": ["consejo", "tip", "truco"],
    "mechanics": ["mecanica", "mechanic"],
    "scoring": ["puntuacion", "puntos", "score", "scoring"],
}

TOPIC_OBJECTIVE = "objective"
TOPIC_CONTROLS = "controls"
TOPIC_TIPS = "tips"
TOPIC_MECHANICS = "mechanics"

# Ordre significatif : le premier marqueur trouvé l'emporte
TOPIC_MARKERS: List[tuple[str, tuple[str, ...]]] = [
    (TOPIC_OBJECTIVE, ("objetivo", "objective")),
    (TOPIC_CONTROLS, ("control",)),
    (TOPIC_TIPS, ("consejo", "tip")),
    (TOPIC_MECHANICS, ("mecanica", "mechanic")),
]
LIST_CATEGORIES = (TOPIC_TIPS, TOPIC_MECHANICS)


def fold(text: str) -> str:
    """Minuscules + suppression des accents (mecánica → mecanica)."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class TopicDocument(BaseModel):
    """Fiche d'un mini-jeu (topic)."""

    objective: str = ""
    controls: str = ""
    tips: List[str] = Field(default_factory=list)
    mechanics: List[str] = Field(default_factory=list)


def _topic_category(header: str) -> Optional[str]:
    folded = fold(header)
    for category, markers in TOPIC_MARKERS:
        if any(marker in folded for marker in markers):
            return category
    return None


class DocumentIndex:
    """Table de sections + fiches topics + index de mots-clés."""

    def __init__(self, reader: Optional[FileReader] = None) -> None:
        self.reader = reader or READER
        self._lock = RLock()
        self._sections: Dict[str, str] = {}
        self._topics: Dict[str, TopicDocument] = {}
        self._keywords: Dict[str, List[str]] = {category: [] for category in KEYWORD_CATEGORIES}

    # -----------------------------
    # Document principal
    # -----------------------------
    def load_primary_document(self, path: PathLike) -> bool:
        """Charge le README; False (et contenu précédent conservé) si illisible."""
        text = self.reader.read_text(path)
        if text is None:
            logger.warning("Primary document unavailable, keeping previous sections", extra={"doc_path": str(path)})
            return False
        self.parse_primary_document(text)
        logger.info("Primary document loaded", extra={"doc_path": str(path), "sections": len(self._sections)})
        return True

    def parse_primary_document(self, text: str) -> Dict[str, str]:
        sections: Dict[str, str] = {}
        current: Optional[str] = None
        buffer: List[str] = []

        def _close() -> None:
            if current:
                sections[current] = "\n".join(buffer).strip()

        for line in text.splitlines():
            stripped = line.strip()
            if stripped.startswith(HEADER_MARKER):
                _close()
                current = stripped.lstrip(HEADER_MARKER).strip().lower()
                buffer = []
            elif current:
                buffer.append(line.rstrip())
        _close()

        with self._lock:
            self._sections = sections
            self._rebuild_keyword_index()
        return dict(sections)

    # -----------------------------
    # Documents par topic
    # -----------------------------
    def load_topic_document(self, topic_id: str, path: PathLike) -> bool:
        text = self.reader.read_text(path)
        if text is None:
            logger.warning("Topic document unavailable", extra={"topic_id": topic_id, "doc_path": str(path)})
            return False
        self.parse_topic_document(topic_id, text)
        return True

    def parse_topic_document(self, topic_id: str, text: str) -> TopicDocument:
        collected: Dict[str, List[str]] = {category: [] for category, _ in TOPIC_MARKERS}
        current: Optional[str] = None

        for line in text.splitlines():
            stripped = line.strip()
            if stripped.startswith(HEADER_MARKER):
                is_topic_header = stripped.startswith(TOPIC_HEADER_MARKER) and not stripped.startswith("###")
                current = _topic_category(stripped[2:]) if is_topic_header else None
                continue
            if current is None:
                continue
            if current in LIST_CATEGORIES:
                if stripped.startswith(BULLET_MARKER):
                    collected[current].append(stripped[len(BULLET_MARKER):].strip())
            else:
                collected[current].append(stripped)

        doc = TopicDocument(
            objective="\n".join(collected[TOPIC_OBJECTIVE]).strip(),
            controls="\n".join(collected[TOPIC_CONTROLS]).strip(),
            tips=collected[TOPIC_TIPS],
            mechanics=collected[TOPIC_MECHANICS],
        )
        with self._lock:
            self._topics[topic_id] = doc
        logger.debug("Topic document parsed", extra={"topic_id": topic_id})
        return doc

    def load_topic_directory(self, directory: PathLike, pattern: str = "*.md") -> int:
        """Charge chaque fichier du dossier comme topic (id = nom sans extension)."""
        base = Path(directory)
        if not base.is_dir():
            logger.warning("Topic directory missing", extra={"doc_path": str(base)})
            return 0
        loaded = 0
        for path in sorted(base.glob(pattern)):
            if self.load_topic_document(path.stem, path):
                loaded += 1
        return loaded

    # -----------------------------
    # Index de mots-clés
    # -----------------------------
    def _rebuild_keyword_index(self) -> None:
        index: Dict[str, List[str]] = {}
        for category, keywords in KEYWORD_CATEGORIES.items():
            index[category] = [
                name for name in self._sections
                if any(keyword in fold(name) for keyword in keywords)
            ]
        self._keywords = index

    # -----------------------------
    # Recherche
    # -----------------------------
    def find_section(self, keyword: str) -> str:
        """Correspondance exacte d'abord, sinon première section contenant le mot-clé.

        Un mot-clé vide (ou blanc) ne désigne aucune section et renvoie "".
        """
        needle = (keyword or "").strip().lower()
        if not needle:
            return ""
        with self._lock:
            if needle in self._sections:
                return self._sections[needle]
            for name, body in self._sections.items():
                if needle in name:
                    return body
        return ""

    def keyword_section(self, category: str) -> str:
        """Corps de la première section indexée pour la catégorie (repli: find_section)."""
        with self._lock:
            names = self._keywords.get(category) or []
            if names:
                return self._sections.get(names[0], "")
        return self.find_section(category)

    def sections_for(self, category: str) -> List[str]:
        with self._lock:
            return list(self._keywords.get(category) or [])

    def get_topic(self, topic_id: str) -> Optional[TopicDocument]:
        with self._lock:
            return self._topics.get(topic_id)

    def topics(self) -> List[str]:
        with self._lock:
            return list(self._topics.keys())

    def sections(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._sections)

    def keyword_index(self) -> Dict[str, List[str]]:
        with self._lock:
            return {category: list(names) for category, names in self._keywords.items()}
