"""AI-assisted merge conflict resolution."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..models.merge import AIMergeResult, ConflictResolution, ParsedConflictFile, ResolutionConfidence
from ..services.cli_detection import CLIDetectionService
from ..services.exceptions import AIResponseError, CLIUnavailableError, CommandTimeoutError
from .ai_output_parser import extract_json_block
from .conflicts import apply_resolutions
from .constants import AI_MERGE_TIMEOUT, MERGE_PRD_LIMIT

logger = logging.getLogger(__name__)

MERGE_PROVIDERS = ["claude", "codex"]


@dataclass
class MergePromptContext:
    task_id: str
    task_label: str
    task_description: str
    conflicts: Sequence[ParsedConflictFile]
    prd_content: Optional[str] = None


class AIMergeService:
    """Asks an AI CLI to resolve conflicts and writes accepted resolutions back."""

    def __init__(self, workspace: Path, cli_detection: Optional[CLIDetectionService] = None,
                 timeout: float = AI_MERGE_TIMEOUT):
        self.workspace = Path(workspace)
        self.cli_detection = cli_detection or CLIDetectionService()
        self.timeout = timeout

    def build_prompt(self, context: MergePromptContext) -> str:
        parts = [
            "You are helping resolve merge conflicts for a task.",
            "",
            "## Task Information",
            f"- **Task:** {context.task_label}",
            f"- **Description:** {context.task_description}",
            "",
        ]
        if context.prd_content:
            prd = context.prd_content
            if len(prd) > MERGE_PRD_LIMIT:
                prd = prd[:MERGE_PRD_LIMIT] + "..."
            parts += ["## PRD Context (abbreviated)", prd, ""]

        parts += ["## Merge Conflicts", "",
                  "The following files have conflicts that need to be resolved:", ""]
        for conflict_file in context.conflicts:
            parts += [f"### File: {conflict_file.file_path}", ""]
            for number, conflict in enumerate(conflict_file.conflicts, start=1):
                parts += [
                    f"#### Conflict {number} (lines {conflict.start_line}-{conflict.end_line})",
                    "",
                    "**Our version (current branch):**",
                    "```", conflict.ours, "```", "",
                    "**Their version (incoming branch):**",
                    "```", conflict.theirs, "```", "",
                ]

        parts += [
            "## Instructions",
            "",
            "For each conflict, analyze both versions in the context of the task, keep all",
            "intended functionality, merge both sides when both are valid, and give a",
            "confidence level (high/medium/low) with a brief explanation.",
            "",
            "Respond with JSON in this format, with one entry in resolvedBlocks per conflict, in order:",
            "{",
            '  "resolutions": [',
            "    {",
            '      "filePath": "path/to/file",',
            '      "resolvedBlocks": ["merged code for conflict 1", "merged code for conflict 2"],',
            '      "confidence": "high|medium|low",',
            '      "explanation": "why this resolution was chosen",',
            '      "needsReview": true',
            "    }",
            "  ],",
            '  "summary": "Brief summary of all resolutions"',
            "}",
        ]
        return "\n".join(parts)

    def parse_response(self, output: str, total_conflicts: int,
                       provider: Optional[str] = None) -> AIMergeResult:
        data = extract_json_block(output)
        if data is None or not isinstance(data.get("resolutions"), list):
            logger.warning("AI merge response contained no resolutions")
            return AIMergeResult(success=False, total_conflicts=total_conflicts, provider=provider,
                                 error="Could not parse AI response", raw_output=output)

        resolutions = []
        for item in data["resolutions"]:
            if not isinstance(item, dict) or not item.get("filePath"):
                continue
            blocks = item.get("resolvedBlocks")
            if not isinstance(blocks, list):
                blocks = [item["resolvedContent"]] if "resolvedContent" in item else []
            try:
                confidence = ResolutionConfidence(str(item.get("confidence", "medium")).lower())
            except ValueError:
                confidence = ResolutionConfidence.MEDIUM
            resolutions.append(ConflictResolution(
                file_path=item["filePath"],
                resolved_blocks=[str(block) for block in blocks],
                confidence=confidence,
                explanation=item.get("explanation", ""),
                needs_review=bool(item.get("needsReview", True)),
            ))

        return AIMergeResult(
            success=True,
            resolutions=resolutions,
            summary=data.get("summary", ""),
            total_conflicts=total_conflicts,
            high_confidence_count=sum(r.confidence == ResolutionConfidence.HIGH for r in resolutions),
            provider=provider,
            raw_output=output,
        )

    def resolve(self, context: MergePromptContext, provider: Optional[str] = None) -> AIMergeResult:
        """Ask Claude (or Codex) for conflict resolutions.

        Raises:
            CLIUnavailableError: If neither CLI is installed
            CommandTimeoutError: If the CLI does not answer in time
            AIResponseError: If the CLI exits with an error
        """
        chosen = self.cli_detection.select_provider(provider or "auto", allowed=MERGE_PROVIDERS)
        if chosen is None:
            raise CLIUnavailableError("No AI provider available. Install Claude CLI or Codex CLI.")

        executable = self.cli_detection.executable_for(chosen)
        command = [executable, "--print"] if chosen == "claude" else [executable]
        total = sum(len(f.conflicts) for f in context.conflicts)
        logger.info(f"Asking {chosen} to resolve {total} conflict(s) for task {context.task_id}")
        try:
            result = subprocess.run(
                command,
                input=self.build_prompt(context),
                cwd=self.workspace,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f"{chosen} merge resolution timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise AIResponseError(f"{chosen} merge resolution failed: {e.stderr or e}") from e
        except OSError as e:
            raise AIResponseError(f"Could not run {chosen}: {e}") from e

        return self.parse_response(result.stdout, total, chosen)

    def apply(self, conflict_files: Sequence[ParsedConflictFile], result: AIMergeResult,
              repo_path: Optional[Path] = None) -> list[str]:
        """Write resolved content for every conflicting file.

        Raises:
            AIResponseError: If a conflicting file has no proposed resolution
            ResolutionCountMismatchError: If a file's resolutions do not match its conflicts
        """
        root = Path(repo_path) if repo_path else self.workspace
        by_path = {r.file_path: r for r in result.resolutions}
        missing = [f.file_path for f in conflict_files if f.file_path not in by_path]
        if missing:
            raise AIResponseError(f"No resolution proposed for: {', '.join(missing)}")

        resolved = [
            (f.file_path, apply_resolutions(f.raw_content, f.conflicts, by_path[f.file_path].resolved_blocks))
            for f in conflict_files
        ]
        for file_path, content in resolved:
            (root / file_path).write_text(content, encoding="utf-8")
            logger.info(f"Wrote resolved file {file_path}")
        return [file_path for file_path, _ in resolved]
