"""L2 Resolver — method selection and dependency stacks."""
