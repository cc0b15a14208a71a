"""stepgraph - Interactive step diagrams for organisational case studies.

Example usage:
    from stepgraph import Visualization, load_bundled_case_study, render_to_svg

    vis = Visualization(load_bundled_case_study())
    vis.select_step(6)
    vis.camera.snap()

    render_to_svg(vis, filename="step6")
"""

from .errors import (
    DataLoadError,
    RecordError,
    StepgraphError,
)
from .interaction import (
    Camera,
    CameraConfig,
    HitResult,
    HitTestConfig,
    HitTester,
)
from .layout import (
    ForceConfig,
    ForceSimulation,
    HierarchicalConfig,
    compute_hierarchical_layout,
)
from .loader import (
    RetryPolicy,
    case_study_from_records,
    load_bundled_case_study,
    load_case_study,
)
from .logging_config import setup_logging
from .models import (
    CaseStudy,
    Document,
    Edge,
    Node,
    Position,
    Step,
    Tier,
)
from .offsets import (
    EdgeOffsets,
    OffsetConfig,
    compute_edge_offsets,
)
from .renderer import (
    DARK_THEME,
    LIGHT_THEME,
    SnapshotRenderer,
    Theme,
    render_to_svg,
)
from .selection import (
    ClearSelection,
    EdgeRelevance,
    NodeRelevance,
    RelevanceIndex,
    SelectionState,
    SelectStep,
    SetHover,
    ToggleEdge,
    reduce,
)
from .visualization import (
    FrameStatus,
    Visualization,
    VisualizationState,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "CaseStudy",
    "Node",
    "Edge",
    "Step",
    "Document",
    "Position",
    "Tier",
    # Loading
    "load_case_study",
    "load_bundled_case_study",
    "case_study_from_records",
    "RetryPolicy",
    # Layout
    "compute_hierarchical_layout",
    "HierarchicalConfig",
    "ForceSimulation",
    "ForceConfig",
    "EdgeOffsets",
    "OffsetConfig",
    "compute_edge_offsets",
    # Selection
    "SelectionState",
    "SelectStep",
    "ToggleEdge",
    "SetHover",
    "ClearSelection",
    "reduce",
    "RelevanceIndex",
    "NodeRelevance",
    "EdgeRelevance",
    # Interaction
    "Camera",
    "CameraConfig",
    "HitTester",
    "HitTestConfig",
    "HitResult",
    "Visualization",
    "VisualizationState",
    "FrameStatus",
    # Rendering
    "render_to_svg",
    "SnapshotRenderer",
    "Theme",
    "DARK_THEME",
    "LIGHT_THEME",
    # Errors and logging
    "StepgraphError",
    "DataLoadError",
    "RecordError",
    "setup_logging",
    # Version
    "__version__",
]
