"""
Lifecycle Domain - Governance of part lifecycle states.

Parts move forward through DRAFT -> PROTOTYPE -> ACTIVE -> NRND -> EOL ->
OBSOLETE. Moves outside the transition table are deviations and need an
authorization reference.
"""
