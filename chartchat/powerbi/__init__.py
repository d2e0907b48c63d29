"""Power BI access: REST client, schema snapshot, visual mutation and report session state."""
