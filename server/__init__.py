"""HTTP surface for the FarmSync core."""
