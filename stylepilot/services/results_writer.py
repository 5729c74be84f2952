"""
Results Writer
==============
Serializes a finished pilot run into a session summary JSON file.
"""
import json
import logging
import os
from typing import Any, Dict, Optional

from stylepilot.models.processing_result import ProcessingResult
from stylepilot.state.processing_context import ProcessingContext

logger = logging.getLogger(__name__)


class ResultsWriter:
    """
    Compiles the result, evaluation history and run log of one session
    into a structured JSON file.
    """

    @staticmethod
    def build_summary(
        result: ProcessingResult,
        context: Optional[ProcessingContext] = None,
        logs: Optional[list] = None,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "session": {
                "session_id": result.session_id,
                "status": result.status,
                "processing_time_ms": result.processing_time_ms,
            },
            "iterations": [],
            "final_results": result.model_dump(exclude={"generated_artifact"}),
            "generated_artifact": result.generated_artifact,
            "logs": [],
        }

        if context is not None:
            data["iterations"] = context.to_dict()["feedback_history"]

        for entry in logs or []:
            data["logs"].append(entry.model_dump())

        return data

    @staticmethod
    def write_results(
        result: ProcessingResult,
        output_path: str,
        context: Optional[ProcessingContext] = None,
        logs: Optional[list] = None,
    ) -> bool:
        """
        Write the summary to ``output_path``.

        Returns False (and logs) on I/O failure; the run outcome is unaffected.
        """
        data = ResultsWriter.build_summary(result, context, logs)
        abs_output = os.path.abspath(output_path)
        try:
            directory = os.path.dirname(abs_output)
            if directory:
                os.makedirs(directory, exist_ok=True)
            logger.info("Writing session summary to %s", abs_output)
            with open(abs_output, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
            return True
        except OSError as e:
            logger.error("Failed to write session summary: %s", e, exc_info=True)
            return False
