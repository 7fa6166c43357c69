"""
Optimized Modelfile generation
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MODELFILE_NAME = "Modelfile.optimized"

SYSTEM_PROMPT = (
    "You are an expert programming assistant. Provide clear, concise, and "
    "well-commented code. Follow best practices and explain your solutions when needed."
)

MODELFILE_TEMPLATE = '''# Optimized Modelfile for {base_model}
FROM {base_model}

# Optimized parameters based on system resources
PARAMETER num_ctx {context_size}
PARAMETER num_batch 512
PARAMETER num_gpu 999  # Use all available GPU layers
PARAMETER num_thread 8

# Temperature for coding (more deterministic)
PARAMETER temperature 0.2
PARAMETER top_p 0.95
PARAMETER top_k 40

# System prompt for coding
SYSTEM """{system_prompt}"""
'''


def render_modelfile(base_model: str, context_size: int) -> str:
    """Render the Modelfile text for a model and context size"""
    if context_size <= 0:
        raise ValueError(f"Context size must be positive, got {context_size}")
    return MODELFILE_TEMPLATE.format(
        base_model=base_model,
        context_size=context_size,
        system_prompt=SYSTEM_PROMPT,
    )


def write_modelfile(base_model: str, context_size: int, path: Path = Path(DEFAULT_MODELFILE_NAME)) -> Path:
    path = Path(path)
    # newline="" keeps the output identical across platforms
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(render_modelfile(base_model, context_size))
    logger.info(f"Created optimized Modelfile: {path}")
    return path
