"""Markdown parser for front matter and heading-delimited sections.

Handles:
- YAML front matter parsing
- Section extraction at ATX headings
- Section role inference from heading titles
"""
import re
from typing import Any, Dict, List, Tuple

import structlog
import yaml

from docsearch.errors import FrontMatterError
from docsearch.rag.models import Section, SectionType

logger = structlog.get_logger()

# Heading keyword -> section type, first match wins
SECTION_KEYWORDS: Tuple[Tuple[str, SectionType], ...] = (
    ("context", SectionType.CONTEXT),
    ("decision", SectionType.DECISION),
    ("consequence", SectionType.CONSEQUENCES),
    ("summary", SectionType.SUMMARY),
    ("background", SectionType.BACKGROUND),
    ("implementation", SectionType.IMPLEMENTATION),
)


class MarkdownParser:
    """Parser for markdown documents with front matter support."""

    # YAML front matter, must be at the very start of the file
    FRONTMATTER_PATTERN = re.compile(
        r"\A---[ \t]*\n(.*?\n)?---[ \t]*(?:\n|\Z)", re.DOTALL
    )

    # ATX heading: 1-6 '#', whitespace, heading text
    HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")

    def parse_text(self, content: str) -> Tuple[Dict[str, Any], str]:
        """Split raw file content into front matter and markdown body.

        Args:
            content: Full file content

        Returns:
            Tuple of (front_matter_dict, body)

        Raises:
            FrontMatterError: If the front matter is not valid YAML or not a mapping
        """
        match = self.FRONTMATTER_PATTERN.match(content)

        if not match:
            return {}, content

        yaml_content = match.group(1) or ""
        try:
            front_matter = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            logger.debug(
                "frontmatter_parse_error",
                error=str(e),
                yaml_preview=yaml_content[:100],
            )
            raise FrontMatterError(f"Invalid YAML front matter: {e}") from e

        if front_matter is None:
            front_matter = {}
        elif not isinstance(front_matter, dict):
            raise FrontMatterError(
                f"Front matter must be a mapping, got {type(front_matter).__name__}"
            )

        return front_matter, content[match.end() :]

    def extract_sections(self, body: str) -> List[Section]:
        """Split a markdown body into sections at ATX headings.

        Each section's text starts with its heading line. Text before the
        first heading forms an untitled section. Sections whose text is
        blank are dropped.

        Args:
            body: Markdown body (without front matter)

        Returns:
            Ordered list of Section objects
        """
        sections: List[Section] = []
        title = ""
        section_type = SectionType.CONTENT
        lines: List[str] = []

        for line in body.split("\n"):
            match = self.HEADING_PATTERN.match(line)

            if match:
                self._close_section(sections, title, section_type, lines)
                title = match.group(2).strip()
                section_type = self.infer_section_type(title)
                lines = [line]
            else:
                lines.append(line)

        self._close_section(sections, title, section_type, lines)

        return sections

    @staticmethod
    def infer_section_type(title: str) -> SectionType:
        """Classify a heading title by keyword, defaulting to content."""
        lower_title = title.lower()
        for keyword, section_type in SECTION_KEYWORDS:
            if keyword in lower_title:
                return section_type
        return SectionType.CONTENT

    @staticmethod
    def _close_section(
        sections: List[Section],
        title: str,
        section_type: SectionType,
        lines: List[str],
    ) -> None:
        text = "".join(line + "\n" for line in lines)
        if text.strip():
            sections.append(Section(title=title, section_type=section_type, text=text))
