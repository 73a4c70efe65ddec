"""Prompt templates sent to the chat-completion API"""


def build_overview_prompt(script):
    return (
        "Provide a short overview of the following SQL Server code, focusing on "
        "data types, stored procedures, functions, transactions, etc.\n\n"
        f"{script}"
    )


def build_erd_prompt(script):
    return f"""I have a SQL Server database schema, and I need to generate an Entity-Relationship Diagram (ERD) in Mermaid.js format. The ERD should include the following details:

1. **Entities (Tables):**
   - List all tables in the schema.
   - Include the table name and its attributes.

2. **Attributes (Columns):**
   - For each table, list all columns with their simplified data types.
   - Highlight primary keys, foreign keys, and unique constraints.

3. **Output Format:**
   - Provide the ERD **only** in Mermaid.js format. Do not include any additional text or explanation.
   - Use the following structure for each table:
     ```
     erDiagram
         TABLE_NAME {{
             COLUMN_TYPE COLUMN_NAME PK/FK/UK (if applicable)
             ...
         }}
     ```

Here is the SQL Server schema:

{script}

Generate the ERD in Mermaid.js format only.

ADDITIONAL RULES:
- Use unique and simple entity names (no schema prefixes such as dbo.).
- Only use letters, numbers, and underscores in entity names (no spaces or special characters).
- Use Mermaid.js relationship syntax for cardinality:
  ||--o{{ one-to-many, ||--|| one-to-one, }}o--o{{ many-to-many, |o--o{{ zero-or-one-to-many.
- Ensure every relationship connects two entities defined in the diagram and carries a short label.
- Simplify data types to basic types (e.g., INT, VARCHAR, DATE, DECIMAL, BIT, DATETIME) without precision or scale.
- Output nothing but a single ```mermaid code block."""


CONVERSION_STEPS = """## **Conversion Steps:**
1. **Schema and Table Conversion:**
   - Translate all CREATE TABLE statements.
   - Convert SQL Server data types to their PostgreSQL equivalents.
   - Retain primary keys, foreign keys, unique constraints, and default values.
2. **Indexes and Constraints:**
   - Convert all CREATE INDEX statements.
   - Translate constraints like CHECK, NOT NULL, etc.
3. **Stored Procedures and Functions:**
   - Rewrite all CREATE PROCEDURE and CREATE FUNCTION statements.
   - Adapt T-SQL syntax to PL/pgSQL, ensuring logic integrity.
4. **Triggers:**
   - Convert any triggers from SQL Server to PostgreSQL syntax.
5. **Transactions:**
   - Ensure that transaction controls (BEGIN, COMMIT, ROLLBACK) are compatible with PostgreSQL.
6. **Data Migration Scripts:**
   - Adjust any data import/export scripts to fit PostgreSQL's COPY or \\COPY commands.
7. **Sequences and Identity Columns:**
   - Translate IDENTITY columns to PostgreSQL SERIAL or GENERATED columns.
   - Create sequences where necessary.
8. **Views:**
   - Convert all CREATE VIEW statements to PostgreSQL syntax.
9. **Error Handling:**
   - Adapt any error-handling mechanisms to PostgreSQL's exception handling.
10. **Testing and Validation:**
    - Provide SQL statements to test the integrity and functionality of the converted database."""


def build_convert_prompt(script):
    return f"""I have a SQL Server database script that I need to convert to PostgreSQL. The conversion should be accurate, preserving all data types, stored procedures, functions, transactions, indexes, constraints, and relationships. Please follow these steps meticulously to ensure the converted code is fully functional in PostgreSQL.

--- Original SQL Server Code ---
{script}
---
{CONVERSION_STEPS}
## **Output Requirements:**
- Provide the complete converted PostgreSQL script, segmented by the steps above.
- Ensure the syntax is compatible with PostgreSQL 13 or later.
- Only provide the converted code in PostgreSQL format, no explanations outside SQL comments."""


def build_verify_prompt(original, converted):
    return (
        "Check the following PostgreSQL code and the original SQL Server code. "
        "Confirm whether the conversion is accurate and free of errors.\n\n"
        f"Original SQL Server Code:\n{original}\n\n"
        f"Converted PostgreSQL Code:\n{converted}\n\n"
        "Provide your verification below."
    )
