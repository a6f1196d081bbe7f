"""Tier and addon based feature gating.

Tiers are hierarchical: a license at level N unlocks every module of the
tiers at or below N. Addons unlock extra modules independently of the tier.
Licenses without tier information (legacy format, e.g. ["all"]) unlock
everything.
"""
from typing import Any, Callable, Dict, List, Optional

DEFAULT_TIERS: Dict[int, Dict[str, Any]] = {
    1: {"name": "Core", "modules": [
        "catalog", "orders", "users", "vat_validation",
        "activity_audit", "email_templates", "favorites",
    ]},
    2: {"name": "Standard", "modules": [
        "membership", "invoicing", "payment_methods", "custom_attributes",
    ]},
    3: {"name": "Advanced", "modules": ["reports"]},
    4: {"name": "Pro", "modules": ["delivery", "storage_management"]},
}

DEFAULT_ADDONS: Dict[str, List[str]] = {
    "analytics": ["tracking"],
    "messageboard": ["messageboard"],
    "mailchimp": ["mailchimp"],
}

# Legacy string tiers
_TIER_LEVELS = {"core": 1, "standard": 2, "advanced": 3, "pro": 4}

_UNSET = object()


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


class FeatureGate:
    """
    Decides which modules and addons the current license enables.

    The features provider is called lazily and its answer memoized until
    clear_cache() is called.
    """

    def __init__(
        self,
        features_provider: Callable[[], Any],
        tiers: Optional[Dict[int, Dict[str, Any]]] = None,
        addons: Optional[Dict[str, List[str]]] = None,
    ):
        """
        Initialize the feature gate.

        Args:
            features_provider: Returns the decoded features of the license
            tiers: Level -> {"name", "modules"}; defaults to DEFAULT_TIERS
            addons: Addon feature key -> modules; defaults to DEFAULT_ADDONS
        """
        self._provider = features_provider
        self.tiers = tiers if tiers is not None else DEFAULT_TIERS
        self.addons = addons if addons is not None else DEFAULT_ADDONS
        self._cache: Any = _UNSET

    def clear_cache(self) -> None:
        self._cache = _UNSET

    def _license_data(self) -> Optional[Dict[str, Any]]:
        """Tier and addons of the license, or None for legacy licenses."""
        if self._cache is _UNSET:
            features = self._provider()
            if isinstance(features, dict) and features.get("tier") is not None:
                self._cache = {
                    "tier": features["tier"],
                    "addons": features.get("addons") or [],
                }
            else:
                self._cache = None
        return self._cache

    @staticmethod
    def _tier_level(tier: Any) -> int:
        if isinstance(tier, dict):
            try:
                return int(tier.get("level") or 0)
            except (TypeError, ValueError):
                return 0
        if isinstance(tier, str):
            return _TIER_LEVELS.get(tier, 0)
        return 0

    def _addon_keys(self, license_data: Dict[str, Any]) -> List[str]:
        return [
            addon.get("feature_key")
            for addon in license_data["addons"]
            if isinstance(addon, dict) and addon.get("feature_key")
        ]

    def has_module(self, module: str) -> bool:
        """Check if a module is enabled by tier level or by an addon."""
        data = self._license_data()
        if data is None:
            return True

        required = self.get_module_required_level(module)
        if required is not None and self._tier_level(data["tier"]) >= required:
            return True

        return any(module in self.addons.get(key, []) for key in self._addon_keys(data))

    def get_enabled_modules(self) -> List[str]:
        data = self._license_data()
        if data is None:
            return self.get_all_modules()

        level = self._tier_level(data["tier"])
        enabled: List[str] = []
        for tier_level, config in sorted(self.tiers.items()):
            if level >= tier_level:
                enabled.extend(config["modules"])
        for key in self._addon_keys(data):
            enabled.extend(self.addons.get(key, []))
        return _unique(enabled)

    def get_all_modules(self) -> List[str]:
        modules: List[str] = []
        for _, config in sorted(self.tiers.items()):
            modules.extend(config["modules"])
        for addon_modules in self.addons.values():
            modules.extend(addon_modules)
        return _unique(modules)

    def get_tier(self) -> Optional[Dict[str, Any]]:
        """Tier {slug, name, level}, or None for legacy licenses."""
        data = self._license_data()
        if data is None or not isinstance(data["tier"], dict):
            return None
        tier = data["tier"]
        return {
            "slug": tier.get("slug"),
            "name": tier.get("name"),
            "level": self._tier_level(tier),
        }

    def get_tier_level(self) -> int:
        tier = self.get_tier()
        return tier["level"] if tier else 0

    def has_addon(self, addon_key: str) -> bool:
        data = self._license_data()
        if data is None:
            return True
        return addon_key in self._addon_keys(data)

    def get_enabled_addons(self) -> List[str]:
        data = self._license_data()
        if data is None:
            return list(self.addons)
        return self._addon_keys(data)

    def get_module_required_level(self, module: str) -> Optional[int]:
        """Lowest tier level that includes the module; None if addon-only or unknown."""
        for level, config in sorted(self.tiers.items()):
            if module in config["modules"]:
                return level
        return None
