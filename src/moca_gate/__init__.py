"""Moca gating API: invite-code and staked-NFT gated registration service."""
