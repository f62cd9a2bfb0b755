"""
Installer service — package re-exports.

    from zinstall.core.services.installer import Installer

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration).
"""

# ── L0: Data ──
from zinstall.core.services.installer.data.backends import BACKENDS, BACKEND_ORDER  # noqa: F401
from zinstall.core.services.installer.data.recipe_loader import RecipeIndex  # noqa: F401

# ── L1: Domain ──
from zinstall.core.services.installer.domain.actions import (  # noqa: F401
    CallbackRegistry,
    HookContext,
)

# ── Errors ──
from zinstall.core.services.installer.errors import (  # noqa: F401
    BatchInstallFailure,
    CycleDetected,
    HookFailure,
    InstallerError,
    NetworkFailure,
    NoApplicableMethod,
    RecipeFieldMissing,
    RepoProvisioningFailure,
    SingleInstallFailure,
    UnknownTarget,
)

# ── L3: Detection ──
from zinstall.core.services.installer.detection.environment import (  # noqa: F401
    SystemProfile,
    detect_system_profile,
)

# ── L5: Orchestration ──
from zinstall.core.services.installer.orchestration.orchestrator import Installer  # noqa: F401
