"""
Primitive library module.

Provides access to the bundled primitive signatures (Add, Register,
FastMult, etc.) declared in core.yml. Only their timing interfaces are
known to the checker.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from timecraft.model import ComponentSignature

# Default path to primitive declarations
PRIMITIVES_PATH = Path(__file__).resolve().parent / "core.yml"


class PrimitiveLibrary:
    """
    Access predefined primitive signatures.

    Loads primitive declarations from YAML and provides query methods.
    """

    def __init__(self, signatures: Dict[str, ComponentSignature], source: Optional[Path] = None):
        """Initialize with pre-loaded signatures."""
        self._signatures = signatures
        self.source = source

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PrimitiveLibrary":
        """
        Load primitive signatures from a design YAML file.

        Args:
            path: Path to the primitive file (defaults to the bundled core.yml)

        Returns:
            PrimitiveLibrary instance
        """
        # Deferred import: the parser depends on the model only
        from timecraft.parser import ParseError, YamlDesignParser

        path = Path(path or PRIMITIVES_PATH)
        if not path.exists():
            raise FileNotFoundError(f"Primitive definitions file not found: {path}")

        design = YamlDesignParser().parse_file(path)
        signatures = {}
        for component in design.components:
            if component.has_body:
                raise ParseError(
                    f"Primitive '{component.name}' must not have a body",
                    path,
                    component.signature.loc.line if component.signature.loc else None,
                )
            signatures[component.name] = component.signature
        return cls(signatures, path)

    @property
    def signatures(self) -> List[ComponentSignature]:
        return list(self._signatures.values())

    def list_primitives(self) -> List[str]:
        """
        Get list of available primitive names.

        Returns:
            List of names (e.g., ['Add', 'Sub', ..., 'Register'])
        """
        return list(self._signatures.keys())

    def get_signature(self, name: str) -> Optional[ComponentSignature]:
        return self._signatures.get(name)

    def get_info(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Get primitive information as dictionary (for JSON serialization).

        Args:
            name: Primitive name

        Returns:
            Dictionary with primitive info or None
        """
        signature = self.get_signature(name)
        if signature is None:
            return None

        from timecraft.parser.grammar import format_signature

        return {
            "name": signature.name,
            "description": signature.description,
            "signature": format_signature(signature),
            "params": [str(p) for p in signature.params],
            "events": [str(e) for e in signature.events],
            "inputs": [str(p) for p in signature.inputs],
            "outputs": [str(p) for p in signature.outputs],
            "where": [str(c) for c in signature.where],
        }

    def get_all_info(self) -> List[Dict[str, Any]]:
        return [self.get_info(name) for name in self.list_primitives()]


# Singleton instance for convenience
_library_instance: Optional[PrimitiveLibrary] = None


def get_primitive_library() -> PrimitiveLibrary:
    """Get or create the global PrimitiveLibrary instance."""
    global _library_instance
    if _library_instance is None:
        _library_instance = PrimitiveLibrary.load()
    return _library_instance
