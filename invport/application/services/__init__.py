"""Application services: inventory, description rewrite and VIN image folders."""
