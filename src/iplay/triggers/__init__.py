from iplay.triggers.dispatcher import TriggerDispatcher

__all__ = ["TriggerDispatcher"]
