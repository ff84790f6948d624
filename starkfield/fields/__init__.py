"""The M31 base field, its complex and secure extensions, and secure columns."""