"""
PlaceShare Backend — Repositories Layer
=========================================

What:  CRUD access to records, one repository per aggregate.
Why:   Keeps SQL out of the workflow and gives it one failure type to handle:
       every SQLAlchemy error is wrapped in RepositoryError.

Repository Inventory:
    - PlaceRepository: places table
    - UserRepository:  users table and the user_places reference collection

Repositories are stateless singletons; the AsyncSession is passed into every
call so the caller owns the transaction boundary.
"""
