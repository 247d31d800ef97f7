import pandas as pd


def make_events(rows, subject="id", occasion="occasion", value="detected", extra=()):
    """
    Build a typed event table like SurveyRecordLoader returns.

    ``rows`` is a list of tuples ``(subject, occasion, value, *extra)``.
    """
    columns = [subject, occasion, value, *extra]
    df = pd.DataFrame(rows, columns=columns)
    df[occasion] = df[occasion].astype("int64")
    return df


def make_histories(rows, subject="id"):
    """History table as EncounterHistoryBuilder returns, from (subject, ch) pairs."""
    return pd.DataFrame(rows, columns=[subject, "ch"])


def make_nest_histories(rows, subject="id"):
    """Nest history table from (subject, first, present, checked, fate) tuples."""
    df = pd.DataFrame(rows, columns=[subject, "FirstFound", "LastPresent", "LastChecked", "Fate"])
    return df.astype({c: "int64" for c in df.columns if c != subject})


def write_csv(path, header, rows, delimiter=","):
    """Write a small delimited file; rows are sequences of already-formatted fields."""
    lines = [delimiter.join(header)]
    lines += [delimiter.join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path
