from .config_manager import ConfigManager, TierTimeSlot

__all__ = ['ConfigManager', 'TierTimeSlot']
