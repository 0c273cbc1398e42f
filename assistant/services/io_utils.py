"""
Utilitaires IO (rapides) : JSON via orjson + lecture de documents texte.
- read_json(Path)  → Any | None (None si fichier manquant)
- FileReader.exists(path) / FileReader.read_text(path) → str | None

Attention:
- orjson attend des bytes; on lit en mode binaire.
- read_text ne lève jamais : un fichier absent ou illisible renvoie None
  (les documents manquants ne sont pas bloquants pour l'assistant).
"""
import logging
from pathlib import Path
from typing import Any, Optional, Union

import orjson as json

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_json(path: Path) -> Any:
    """Lit un fichier JSON (ou None s'il n'existe pas)."""
    if not path.exists():
        return None
    with path.open("rb") as f:
        return json.loads(f.read())


class FileReader:
    """Lecteur de fichiers texte tolérant (UTF-8)."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def exists(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def read_text(self, path: PathLike) -> Optional[str]:
        """Retourne le contenu du fichier, ou None si absent/illisible."""
        target = Path(path)
        if not self.exists(target):
            logger.warning("Document source missing", extra={"doc_path": str(target)})
            return None
        try:
            return target.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError):
            logger.error("Document source unreadable", exc_info=True, extra={"doc_path": str(target)})
            return None


READER = FileReader()
