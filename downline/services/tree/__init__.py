"""
Downline tree services package.

Contains the traversal engine over upline pointers:
- ancestry: ancestor checks and upward path walks
- level_aggregator: per-level downline counts with overflow bucket
- materializer: depth-bounded subtree with view policy
- child_loader: cursor-paginated direct children
- search_resolver: identity search with root-relative paths
- referral_codes: unique referral code generation
- registration: atomic node creation under a sponsor
- statistics: dashboard figures and referral list audit
"""

from downline.services.tree.ancestry import AncestryVerifier, climb_ancestors
from downline.services.tree.child_loader import ChildLoader, ChildPage
from downline.services.tree.level_aggregator import LevelAggregator, LevelCounts
from downline.services.tree.materializer import (
    Subtree,
    SubtreeLevel,
    TreeMaterializer,
    clamp_depth,
)
from downline.services.tree.referral_codes import ReferralCodeGenerator
from downline.services.tree.registration import RegistrationService
from downline.services.tree.search_resolver import SearchHit, SearchResolver
from downline.services.tree.statistics import (
    DirectProgress,
    DownlineStatistics,
    ReferralAudit,
)


__all__ = [
    # Traversal
    "AncestryVerifier",
    "climb_ancestors",
    "LevelAggregator",
    "LevelCounts",
    "TreeMaterializer",
    "Subtree",
    "SubtreeLevel",
    "clamp_depth",
    "ChildLoader",
    "ChildPage",
    "SearchResolver",
    "SearchHit",
    # Write path
    "ReferralCodeGenerator",
    "RegistrationService",
    # Statistics
    "DownlineStatistics",
    "DirectProgress",
    "ReferralAudit",
]
