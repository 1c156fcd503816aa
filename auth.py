import streamlit as st
from database import (Session, SignupError, authenticate, create_user, get_user,
                      validate_signup)
from session import Identity, issue_token, verify_token


def current_identity(settings):
    """Resolve the signed-in user from the session token, or None."""
    user_id = verify_token(st.session_state.get("token"), settings.secret_key)
    if user_id is None:
        return None
    db = Session()
    try:
        user = get_user(db, user_id)
        if user is None:
            return None
        return Identity(user_id=user.id, name=user.name, email=user.email)
    finally:
        db.close()


def logout():
    st.session_state.pop("token", None)
    st.rerun()


def login(settings):
    st.title("Login or Sign Up")

    tab_login, tab_signup = st.tabs(["Login", "Sign Up"])

    with tab_login:
        st.subheader("Login")
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        if st.button("Login"):
            if email and password:
                user = authenticate(email, password)
                if user:
                    st.session_state["token"] = issue_token(
                        user.id, settings.secret_key, settings.token_max_age)
                    st.success(f"Welcome {user.name}! You have logged in successfully.")
                    st.rerun()
                else:
                    st.error("Invalid email or password")
            else:
                st.error("Please enter both email and password")

    with tab_signup:
        st.subheader("Sign Up")
        new_name = st.text_input("Name", key="signup_name")
        new_email = st.text_input("Email", key="signup_email")
        new_password = st.text_input("Password", type="password", key="signup_password")
        confirm = st.text_input("Confirm Password", type="password", key="signup_confirm")
        if st.button("Sign Up"):
            try:
                validate_signup(new_name, new_email, new_password, confirm)
            except SignupError as e:
                st.error(str(e))
            else:
                user = create_user(new_name, new_email, new_password)
                if user:
                    st.success("Registration successful! Please login.")
                else:
                    st.error("User already exists")
