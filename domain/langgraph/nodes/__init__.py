from .change_detector_node import change_detector_node
from .section_translator_node import section_translator_node, find_target_section
from .reconstructor_node import reconstructor_node

__all__ = [
    "change_detector_node",
    "section_translator_node",
    "find_target_section",
    "reconstructor_node",
]
