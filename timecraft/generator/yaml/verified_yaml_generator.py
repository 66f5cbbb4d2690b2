"""
Verified YAML Generator module.

Writes the concrete port intervals of every verified component, the input
for later stages that gate port reads and writes to their proven windows.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from timecraft.checker import DesignReport


class VerifiedYamlGenerator:
    """
    Generates a YAML export of verified components.

    Rejected components are left out; the export is only produced for
    components that fully verified.
    """

    api_version = "timecraft/v1"

    def build(self, report: DesignReport) -> Dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "design": report.design,
            "verified": [component.to_dict() for component in report.verified],
        }

    def generate(self, report: DesignReport) -> str:
        """
        Generate YAML content from a design report.

        Args:
            report: Result of a design check

        Returns:
            YAML string content
        """
        return yaml.dump(
            self.build(report), default_flow_style=False, sort_keys=False, allow_unicode=True
        )

    def write(self, report: DesignReport, output: Union[str, Path]) -> Path:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate(report), encoding="utf-8")
        return output_path
