"""Fan-out of independent instructions over a worker pool."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import Instruction
from .core import SpriteResult, SpriteSettings
from .core.errors import SpriteError, ValidationError
from .core.pipeline import run
from .sources import SourceResolver, resolve_local

logger = logging.getLogger(__name__)


@dataclass
class InstructionResult:
    """Outcome of one instruction: either a result or the error that aborted it."""

    name: str
    result: Optional[SpriteResult] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_instruction(
    instruction: Instruction,
    base_dir: Path,
    settings: Optional[SpriteSettings] = None,
    resolver: SourceResolver = resolve_local,
) -> InstructionResult:
    """Run a single instruction, capturing its failure instead of raising."""

    try:
        image_dir = resolver(instruction.img, base_dir)
        result = run(
            base_dir / instruction.css,
            image_dir,
            base_dir / instruction.sprite,
            output_path=base_dir / instruction.output if instruction.output else None,
            manifest_path=base_dir / instruction.manifest if instruction.manifest else None,
            settings=settings,
        )
    except (SpriteError, ValidationError) as exc:
        logger.error("Instruction '%s' failed: %s", instruction.name, exc)
        return InstructionResult(name=instruction.name, error=exc)
    except Exception as exc:
        logger.exception("Instruction '%s' failed unexpectedly", instruction.name)
        return InstructionResult(name=instruction.name, error=exc)

    logger.info("Instruction '%s' completed", instruction.name)
    return InstructionResult(name=instruction.name, result=result)


def run_instructions(
    instructions: Iterable[Instruction],
    base_dir: Path,
    settings: Optional[SpriteSettings] = None,
    resolver: SourceResolver = resolve_local,
    max_workers: Optional[int] = None,
) -> list[InstructionResult]:
    """Run every instruction as an independent task and collect results in input order."""

    instructions = list(instructions)
    if not instructions:
        return []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="shalam-job") as pool:
        futures = [
            pool.submit(run_instruction, instruction, base_dir, settings, resolver) for instruction in instructions
        ]
        results = [future.result() for future in futures]

    failed = [result.name for result in results if not result.ok]
    if failed:
        logger.warning("%s of %s instructions failed: %s", len(failed), len(results), ", ".join(failed))
    return results
