"""textforge - declarative text transformations.

Definitions come from YAML files or the definitions database, are compiled
into immutable steps, and are applied by name through the engine.
"""

from textforge.engine import TransformationEngine, get_transformation_engine

__version__ = "0.1.0"

__all__ = ["TransformationEngine", "get_transformation_engine", "__version__"]
