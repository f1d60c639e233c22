"""Knowledge-graph analytics: centrality, communities, paths and influencer ranking."""
