"""BizFinder client-side orchestration: backend client, identity, payments and subscriptions."""
