"""
Shared, cross-cutting code for the API.

`core/` holds the data-access layer every feature uses: connection
factories, the QueryExecutor, transactions, settings and errors. Keep
feature-specific SQL and business rules in the corresponding feature
package (e.g. `students/`).
"""
