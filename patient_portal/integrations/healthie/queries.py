"""GraphQL documents sent to Healthie."""

USER_FIELDS = """
    id
    first_name
    last_name
    email
    dob
    sex
    phone_number
"""

FIND_USERS_BY_EMAIL = f"""
query FindUserByEmail($email: String!) {{
  users(keywords: $email) {{{USER_FIELDS}  }}
}}
"""

CREATE_CLIENT = f"""
mutation CreateClient($input: createClientInput!) {{
  createClient(input: $input) {{
    user {{{USER_FIELDS}    }}
    messages {{
      field
      message
    }}
  }}
}}
"""

UPDATE_USER = f"""
mutation UpdateUser($input: updateUserInput!) {{
  updateUser(input: $input) {{
    user {{{USER_FIELDS}    }}
    messages {{
      field
      message
    }}
  }}
}}
"""

REQUESTED_FORMS = """
query RequestedForms($userId: ID) {
  requestedFormCompletions(userId: $userId) {
    id
    status
    custom_module_form {
      id
      name
    }
  }
}
"""

UPCOMING_APPOINTMENTS = """
query UpcomingAppointments($userId: ID) {
  appointments(user_id: $userId, filter: "upcoming", should_paginate: false) {
    id
    date
  }
}
"""

CURRENT_USER = """
query CurrentUser {
  currentUser {
    id
    email
  }
}
"""
