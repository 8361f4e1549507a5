# Lead Finder
#
# Daily discovery of high-net-worth leads from public news and bios.
# Entry point:
# - src.lead_finder.orchestrator.create_lead_finder_orchestrator
#
# Modules import each other directly; nothing is re-exported here so the
# repositories package can import src.lead_finder.types without a cycle.
