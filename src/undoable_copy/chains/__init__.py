"""Orchestration chains that drive transactional steps."""

from undoable_copy.chains.tx_chain import TxChain, TxOptions, TxReport

__all__ = ["TxChain", "TxOptions", "TxReport"]
