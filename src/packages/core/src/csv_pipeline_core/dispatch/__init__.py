"""Producer-side job dispatch."""
from csv_pipeline_core.dispatch.dispatcher import Dispatcher, PUBLISH_FAILURE_ACTIONS

__all__ = ["Dispatcher", "PUBLISH_FAILURE_ACTIONS"]
