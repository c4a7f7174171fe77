"""idbridge modules."""
