"""
Report template source.

Templates are static HTML shells, one per report layout, read from disk once
when the loader is built. Lookups after that are in-memory reads.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup

from fsr_report.common.error_handling import TemplateResolutionError
from fsr_report.common.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_FILES = ("dpg.html", "thermal.html", "dcps.html")

COMMON_ELEMENTS = ["customerName", "fsrNumber", "fsrDateAndTime"]
LAYOUT_ELEMENTS = {
    "thermal": ["serviceType", "observation", "workDone", "recommendation"],
}


class TemplateLoader:
    """Reads and caches the report templates."""

    def __init__(self, template_dir: Union[str, Path]):
        self.template_dir = Path(template_dir)
        self._templates: Dict[str, str] = {}
        self._load_templates()

    def _load_templates(self) -> None:
        for file_name in TEMPLATE_FILES:
            name = file_name[: -len(".html")]
            path = self.template_dir / file_name
            if not path.exists():
                logger.warning(f"Template file not found: {path}")
                continue
            try:
                self._templates[name] = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.error(f"Failed to load template {name}: {e}")
                continue
            logger.debug(f"Loaded template: {name}")

    def get_template(self, name: str) -> str:
        """
        Raises:
            TemplateResolutionError: template was not loaded
        """
        try:
            return self._templates[name]
        except KeyError:
            available = ", ".join(self._templates)
            raise TemplateResolutionError(
                f"Template {name} not found. Available templates: {available}"
            ) from None

    @property
    def template_names(self) -> List[str]:
        return list(self._templates)

    def get_all_templates(self) -> Dict[str, str]:
        return dict(self._templates)

    @staticmethod
    def get_required_elements(name: str) -> List[str]:
        """Element ids a layout must carry for binding to be meaningful."""
        return COMMON_ELEMENTS + LAYOUT_ELEMENTS.get(name, [])

    def missing_elements(self, name: str) -> List[str]:
        soup = BeautifulSoup(self.get_template(name), "html.parser")
        return [
            element_id
            for element_id in self.get_required_elements(name)
            if soup.find(id=element_id) is None
        ]

    def validate_template(self, name: str) -> bool:
        """Check a loaded template for its required element ids."""
        missing = self.missing_elements(name)
        if missing:
            logger.warning(f"Template {name} missing elements: {', '.join(missing)}")
        return not missing

    def validate_all_templates(self) -> Dict[str, bool]:
        return {name: self.validate_template(name) for name in self.template_names}


def load_templates(template_dir: Optional[Union[str, Path]] = None) -> TemplateLoader:
    """Build a loader, defaulting to the templates shipped with the package."""
    if template_dir is None:
        template_dir = Path(__file__).resolve().parent / "templates"
    return TemplateLoader(template_dir)
