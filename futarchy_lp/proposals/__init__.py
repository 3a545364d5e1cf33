from .proposal_manager import Proposal, ProposalCreationResult, ProposalManager

__all__ = ['Proposal', 'ProposalCreationResult', 'ProposalManager']
