"""
Base generator interface for rendering check results.

Subclasses render a :class:`DesignReport` into text. Templates are loaded
from the package ``templates`` directory unless another one is given.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from jinja2 import Environment, FileSystemLoader

from timecraft.checker import DesignReport


class BaseGenerator(ABC):
    """
    Abstract base class for report generators.

    Subclasses must implement ``generate``.
    """

    def __init__(self, template_dir: Optional[str] = None):
        """
        Initialize the generator with Jinja2 environment.

        Args:
            template_dir: Optional custom template directory.
                Defaults to the 'templates' directory next to this module.
        """
        if template_dir is None:
            template_dir = os.path.join(os.path.dirname(__file__), "templates")

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    @abstractmethod
    def generate(self, report: DesignReport) -> str:
        """
        Render a design report.

        Args:
            report: Result of a design check

        Returns:
            Rendered content as string
        """
        pass

    def write(self, report: DesignReport, output: Union[str, Path]) -> Path:
        """Render the report and write it to ``output``."""
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate(report), encoding="utf-8")
        return output_path
