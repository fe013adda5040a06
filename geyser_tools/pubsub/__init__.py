"""Google Pub/Sub relay settings and metrics."""