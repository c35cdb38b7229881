"""
RiskCover Engine — deterministic, integer-only math.

Components:
- risk_engine: code / economic / operational sub-scores and the weighted composite
- pricing: premium tiers, premium quotes, risk bands and pool tiers
- checked: u64 checked arithmetic shared by the ledgers

Nothing here touches the database. The same functions back off-system
quotes and on-system enforcement, so results are reproducible bit for bit.
"""
