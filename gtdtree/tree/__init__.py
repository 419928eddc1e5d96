"""
Structural operations over the item hierarchy.
"""
from .index import TreeIndex, TreeNode
from .traversal import TraversalEngine
from .ordering import OrderMaintainer
from .sentinels import Sentinel, SentinelDirectory
from .relocation import Relocator, ArchiveOutcome
from .cloning import Cloner, CloneResult
from .stuck import StuckAreaFinder, StuckProjectsResult

__all__ = [
    'TreeIndex', 'TreeNode', 'TraversalEngine', 'OrderMaintainer',
    'Sentinel', 'SentinelDirectory', 'Relocator', 'ArchiveOutcome',
    'Cloner', 'CloneResult', 'StuckAreaFinder', 'StuckProjectsResult',
]
