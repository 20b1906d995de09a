"""Query engine adapters implementing QueryEngine and QueryRunner."""

from jqprobe.adapters.query.jq_engine import JqEngine, JqProgram
from jqprobe.adapters.query.process_pool import QueryProcessPool

__all__ = ["JqEngine", "JqProgram", "QueryProcessPool"]
