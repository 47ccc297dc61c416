# Services Package
# Business logic between the API routers and the database
