"""VisitGate: visitor admission and invitation lifecycle engine."""
